"""
Simulated compute node definitions for LADS
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from .errors import (
    AlreadyRunningError, InsufficientCapacityError, InvalidArgumentError, LadsError,
    NodeNotActiveError, TaskStartError, TransitionRejectedError,
)
from .task import DEFAULT_TICK_INTERVAL, NodeClass, Task, TaskSnapshot

logger = logging.getLogger(__name__)


class NodeState(Enum):
    """Node lifecycle state"""
    ACTIVE = "active"
    INACTIVE = "inactive"          # Standby, no new tasks
    MAINTENANCE = "maintenance"
    DECOMMISSIONED = "decommissioned"  # Terminal


# Target states that may be entered from each state once in-flight work drains
_DRAINING_TRANSITIONS = {
    NodeState.ACTIVE: {NodeState.INACTIVE, NodeState.MAINTENANCE, NodeState.DECOMMISSIONED},
    NodeState.INACTIVE: {NodeState.MAINTENANCE, NodeState.DECOMMISSIONED},
    NodeState.MAINTENANCE: {NodeState.DECOMMISSIONED},
    NodeState.DECOMMISSIONED: set(),
}

_STATE_DESCRIPTIONS = {
    NodeState.INACTIVE: "standby (inactive)",
    NodeState.MAINTENANCE: "maintenance",
    NodeState.DECOMMISSIONED: "decommissioning",
}


class NodeSnapshot(BaseModel):
    """Point-in-time view of a node"""
    id: str
    name: str
    state: NodeState
    node_class: NodeClass
    cpu_cores: int
    busy_cores: int
    available_cores: int
    tasks: List[TaskSnapshot] = Field(default_factory=list)
    parent_id: Optional[str] = None
    child_ids: List[str] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class Node:
    """
    A capacity-bounded execution unit with a four-state lifecycle.

    busy_cores always equals the summed demand of the tasks currently held.
    Tasks are admitted only while ACTIVE; leaving ACTIVE (or INACTIVE)
    first drains the tasks in flight at the moment the transition began.
    """

    def __init__(
        self,
        name: str,
        node_id: str,
        cpu_cores: int,
        node_class: NodeClass = NodeClass.GENERIC,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        drain_timeout: Optional[float] = None,
    ):
        if isinstance(cpu_cores, bool) or not isinstance(cpu_cores, int) or cpu_cores <= 0:
            raise InvalidArgumentError("Cpu cores must be greater than 0", argument="cpu_cores")

        self.name = name
        self.id = node_id
        self.cpu_cores = cpu_cores
        self.node_class = node_class
        self.state = NodeState.ACTIVE
        self.busy_cores = 0

        self.tick_interval = tick_interval
        self.drain_timeout = drain_timeout

        self.parent: Optional["Node"] = None
        self.children: List["Node"] = []
        self.logs: List[str] = []

        self._tasks: Dict[int, Task] = {}
        self._signals: Dict[int, asyncio.Future] = {}
        self._last_task_id = 0

    @property
    def tasks(self) -> List[Task]:
        """Tasks currently admitted and running"""
        return list(self._tasks.values())

    @property
    def available_cores(self) -> int:
        return self.cpu_cores - self.busy_cores

    def _log(self, message: str) -> None:
        self.logs.append(message)
        logger.debug(f"[{self.name}] {message}")

    # Admission

    def can_accept(self, task: Task) -> bool:
        """Whether the task could be admitted right now"""
        if self.state != NodeState.ACTIVE:
            return False
        class_match = task.task_class.compatible_with(self.node_class)
        cpu_match = self.available_cores >= task.cpu_cores
        return class_match and cpu_match

    def add_task(self, task: Task) -> int:
        """Admit a task and start its countdown. Returns the assigned task id."""
        if self.state != NodeState.ACTIVE:
            self._log(
                f"Node {self.name} is not active (state: {self.state.value}), "
                f"cannot accept task {task.name}."
            )
            raise NodeNotActiveError(self.name, self.state.value)
        if self.busy_cores + task.cpu_cores > self.cpu_cores:
            self._log(
                f"Node {self.name} does not have enough CPU cores ({self.available_cores} available) "
                f"for task {task.name} ({task.cpu_cores} required)."
            )
            raise InsufficientCapacityError(self.name, self.available_cores, task.cpu_cores)
        if task.started:
            raise AlreadyRunningError(task.name, task.id)

        # Ids never repeat within a node's lifetime; commit only once started
        task.id = self._last_task_id + 1
        try:
            signal = task.start(tick_interval=self.tick_interval, on_settled=self._release)
        except LadsError:
            task.id = 0
            raise
        except RuntimeError as e:
            task.id = 0
            raise TaskStartError(task.name, str(e)) from e

        self._last_task_id = task.id
        self._tasks[task.id] = task
        self._signals[task.id] = signal
        self.busy_cores += task.cpu_cores
        self._log(f"Task {task.name} (ID: {task.id}) added to node {self.name}. Starting execution...")
        return task.id

    def _release(self, task: Task) -> None:
        """Bookkeeping continuation, runs once when a task finishes or is disposed"""
        self._signals.pop(task.id, None)
        if self._tasks.pop(task.id, None) is None:
            self._log(
                f"Warning: Cleanup triggered for task ID {task.id} on node {self.name}, "
                f"but task was not found in the active list (may have already finished)."
            )
            return
        self.busy_cores = max(self.busy_cores - task.cpu_cores, 0)
        self._log(f"Task {task.name} (ID: {task.id}) finished/removed from node {self.name}.")

    def dispose_tasks(self) -> int:
        """Stop every in-flight task without firing completion hooks"""
        disposed = 0
        for task in list(self._tasks.values()):
            task.dispose()
            disposed += 1
        # Anything that escaped its continuation
        self._tasks.clear()
        self._signals.clear()
        self.busy_cores = 0
        return disposed

    # Lifecycle

    def _check_transition(self, target: NodeState) -> bool:
        """Return True when the transition needs a drain, raise when it is illegal"""
        if target == NodeState.ACTIVE:
            if self.state == NodeState.INACTIVE:
                return False
            reason = f"Node {self.name} cannot be activated from state {self.state.value}."
        elif target in _DRAINING_TRANSITIONS[self.state]:
            return True
        elif target == NodeState.INACTIVE:
            reason = f"Node {self.name} cannot be put into standby from state {self.state.value}."
        elif target == NodeState.MAINTENANCE:
            reason = f"Node {self.name} cannot be put into maintenance from state {self.state.value}."
        else:
            reason = f"Node {self.name} cannot be decommissioned from state {self.state.value}."
        raise TransitionRejectedError(self.name, self.state.value, target.value, reason)

    async def _drain(self, description: str, lines: List[str]) -> bool:
        signals = list(self._signals.values())
        lines.append(
            f"Node {self.name} preparing for {description}. "
            f"Waiting for {len(signals)} tasks to complete..."
        )
        if signals:
            # asyncio.wait never cancels the tasks' own signals
            _, pending = await asyncio.wait(signals, timeout=self.drain_timeout)
            if pending:
                lines.append(
                    f"Node {self.name} could not transition to {description}. "
                    f"Timed out after {self.drain_timeout}s with {len(pending)} tasks still running."
                )
                return False

        if self._tasks:
            lines.append(
                f"Node {self.name} could not transition to {description}. "
                f"Tasks still present after waiting (tasks: {len(self._tasks)})."
            )
            return False
        lines.append(f"All tasks completed on node {self.name}.")
        return True

    async def set_state(self, target: NodeState) -> List[str]:
        """
        Request a transition to target; returns the log lines produced.

        Failures are reported as lines, never raised. The state stays
        unchanged for the whole drain.
        """
        lines: List[str] = []
        try:
            if self.state == target:
                lines.append(f"Node {self.name} is already in state {target.value}.")
                return lines

            try:
                needs_drain = self._check_transition(target)
            except TransitionRejectedError as e:
                lines.append(str(e))
                return lines

            if needs_drain and not await self._drain(_STATE_DESCRIPTIONS[target], lines):
                return lines

            # A concurrent transition may have won while this one drained
            if self.state == target:
                lines.append(f"Node {self.name} is already in state {target.value}.")
                return lines
            if not needs_drain or target in _DRAINING_TRANSITIONS[self.state]:
                self.state = target
            else:
                lines.append(
                    f"Node {self.name} changed to {self.state.value} while draining; "
                    f"transition to {target.value} aborted."
                )
                return lines

            if target == NodeState.DECOMMISSIONED:
                self.dispose_tasks()
            lines.append({
                NodeState.ACTIVE: f"Node {self.name} is now active.",
                NodeState.INACTIVE: f"Node {self.name} is now in standby (inactive).",
                NodeState.MAINTENANCE: f"Node {self.name} is now in maintenance.",
                NodeState.DECOMMISSIONED: f"Node {self.name} is now decommissioned.",
            }[target])
            return lines
        except Exception as e:
            lines.append(f"Error during transition of node {self.name} to {target.value}: {e}. State transition aborted.")
            return lines
        finally:
            self.logs.extend(lines)

    def repurpose(self, new_class: NodeClass, hierarchical: bool = False) -> List[str]:
        """Change the node's class, optionally for the whole subtree"""
        lines: List[str] = []
        if self.state == NodeState.DECOMMISSIONED:
            lines.append(f"Node {self.name} is decommissioned and cannot be repurposed.")
        else:
            self.node_class = new_class
            lines.append(f"Node {self.name} repurposed to {new_class.value}.")
        self.logs.extend(lines)

        if hierarchical and self.state != NodeState.DECOMMISSIONED:
            for child in self.children:
                lines.extend(child.repurpose(new_class, hierarchical))
        return lines

    # Hierarchy

    def add_child(self, child: "Node") -> None:
        ancestor: Optional[Node] = self
        while ancestor is not None:
            if ancestor is child:
                raise InvalidArgumentError(
                    f"Linking {child.name} under {self.name} would create a cycle.", argument="child"
                )
            ancestor = ancestor.parent
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)
        self._log(f"Node {child.name} attached as child of {self.name}.")

    def remove_child(self, child: "Node") -> None:
        if child in self.children:
            self.children.remove(child)
            child.parent = None
            self._log(f"Node {child.name} detached from {self.name}.")

    def snapshot(self) -> NodeSnapshot:
        return NodeSnapshot(
            id=self.id,
            name=self.name,
            state=self.state,
            node_class=self.node_class,
            cpu_cores=self.cpu_cores,
            busy_cores=self.busy_cores,
            available_cores=self.available_cores,
            tasks=[task.snapshot() for task in self._tasks.values()],
            parent_id=self.parent.id if self.parent else None,
            child_ids=[child.id for child in self.children],
        )

    def __str__(self) -> str:
        return f"Node(id={self.id}, name={self.name}, state={self.state.value})"
