"""
Scheduler - node registry, pending task queue and first-fit matching
"""

import asyncio
import logging
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from ..config import LadsConfig
from .audit import AuditLog
from .errors import DuplicateNameError, InvalidArgumentError, LadsError, NotFoundError
from .ids import NodeIdGenerator
from .node import Node, NodeState
from .task import NodeClass, Task

logger = logging.getLogger(__name__)


class ClusterStats(BaseModel):
    """Aggregate view of the node pool"""
    total_nodes: int = 0
    nodes_by_state: Dict[str, int] = Field(default_factory=dict)
    queued_tasks: int = 0
    running_tasks: int = 0
    total_cores: int = 0
    busy_cores: int = 0
    dispatching: bool = False

    def to_dict(self) -> Dict:
        return self.model_dump(mode="json")


class Scheduler:
    """
    Owns the node directory and the pending queue.

    Every mutating operation appends a line to the audit log. Lookups accept
    either a node id or a node name.
    """

    def __init__(self, config: Optional[LadsConfig] = None, id_generator: Optional[NodeIdGenerator] = None):
        self.config = config or LadsConfig()
        self.config.validate()
        self.id_generator = id_generator or NodeIdGenerator(self.config.node_id_length)

        self._nodes: Dict[str, Node] = {}
        self._queue: List[Task] = []
        self._audit = AuditLog()

        self._running = False
        self._dispatch_task: Optional[asyncio.Task] = None

    # Read accessors

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def queue(self) -> List[Task]:
        return list(self._queue)

    @property
    def logs(self) -> List[str]:
        return self._audit.entries

    def last_log(self) -> Optional[str]:
        return self._audit.last()

    def clear_logs(self) -> None:
        self._audit.clear()

    def _log(self, message: str, level: int = logging.INFO) -> str:
        return self._audit.record(message, level)

    def find_node(self, identifier: str) -> Optional[Node]:
        """Resolve a node by id (case-insensitive), then by name"""
        node = self._nodes.get(identifier.upper())
        if node is not None:
            return node
        for candidate in self._nodes.values():
            if candidate.name == identifier:
                return candidate
        return None

    def get_node(self, identifier: str) -> Node:
        node = self.find_node(identifier)
        if node is None:
            raise NotFoundError(identifier)
        return node

    def _lookup(self, identifier: str) -> Optional[Node]:
        node = self.find_node(identifier)
        if node is None:
            self._log(f'Node with ID "{identifier}" not found.', logging.WARNING)
        return node

    # Node registry

    def create_node(self, name: str, cpu_cores: int, node_class: NodeClass = NodeClass.GENERIC) -> Node:
        """Create an active node with a freshly generated id"""
        if isinstance(cpu_cores, bool) or not isinstance(cpu_cores, int) or cpu_cores <= 0:
            self._log(f"Failed to create node {name}: Cpu cores must be greater than 0", logging.WARNING)
            raise InvalidArgumentError("Cpu cores must be greater than 0", argument="cpu_cores")
        if any(node.name == name for node in self._nodes.values()):
            self._log(f'Failed to create node: Node with name "{name}" already exists.', logging.WARNING)
            raise DuplicateNameError(name)
        if name.upper() in self._nodes:
            self._log(f'Failed to create node {name}: Name collides with node ID {name.upper()}.', logging.WARNING)
            raise InvalidArgumentError(f'Node name "{name}" collides with node ID {name.upper()}.', argument="name")

        # Ids never shadow an existing name under case-insensitive lookup
        taken = set(self._nodes) | {node.name.upper() for node in self._nodes.values()}
        node_id = self.id_generator.generate(taken)
        node = Node(
            name,
            node_id,
            cpu_cores,
            node_class=node_class,
            tick_interval=self.config.tick_interval,
            drain_timeout=self.config.drain_timeout,
        )
        self._nodes[node_id] = node
        self._log(f"Node {name} (ID: {node_id}) created with {cpu_cores} CPU cores and class {node_class.value}.")
        return node

    async def remove_node(self, identifier: str, force: bool = False) -> bool:
        """
        Remove a node from the registry.

        Without force the node is decommissioned first (draining its tasks)
        and removal only proceeds if that succeeds. With force its tasks are
        disposed immediately and their completion hooks never fire.
        """
        node = self._lookup(identifier)
        if node is None:
            return False

        if force:
            disposed = node.dispose_tasks()
            self._log(f"Force removing node {node.name} (ID: {node.id}). Disposed {disposed} running tasks.")
        elif node.state != NodeState.DECOMMISSIONED:
            await self.set_node_state(node.id, NodeState.DECOMMISSIONED)
            if node.state != NodeState.DECOMMISSIONED:
                self._log(
                    f"Node {node.name} (ID: {node.id}) could not be decommissioned. Removal aborted.",
                    logging.WARNING,
                )
                return False

        if self._nodes.pop(node.id, None) is None:
            self._log(f"Node {node.name} (ID: {node.id}) was already removed.", logging.WARNING)
            return False

        if node.parent is not None:
            node.parent.remove_child(node)
        for child in list(node.children):
            node.remove_child(child)

        self._log(f"Node {node.name} (ID: {node.id}) removed.")
        return True

    def link_nodes(self, parent_id: str, child_id: str) -> None:
        """Attach child under parent for hierarchical repurposing"""
        parent = self.get_node(parent_id)
        child = self.get_node(child_id)
        try:
            parent.add_child(child)
        except InvalidArgumentError as e:
            self._log(f"Failed to link nodes: {e}", logging.WARNING)
            raise
        self._log(f"Node {child.name} (ID: {child.id}) linked as child of {parent.name} (ID: {parent.id}).")

    # Queue

    def enqueue_task(self, task: Task) -> None:
        """Append a task to the pending queue"""
        problem = None
        if isinstance(task.cpu_cores, bool) or not isinstance(task.cpu_cores, int) or task.cpu_cores <= 0:
            problem = "Cpu cores must be greater than 0"
        elif task.duration < 0:
            problem = "Task duration must be greater than or equal to 0"
        elif task.started:
            problem = f"Task {task.name} has already been started"
        elif any(queued is task for queued in self._queue):
            problem = f"Task {task.name} is already queued"

        if problem:
            self._log(f"Failed to queue task {task.name}: {problem}", logging.WARNING)
            raise InvalidArgumentError(problem, argument="task")

        self._queue.append(task)
        self._log(
            f"Task {task.name} added to queue (cpu: {task.cpu_cores}, "
            f"duration: {task.duration:g}s, class: {task.task_class.value})."
        )

    def process_queue(self) -> List[Task]:
        """
        Assign queued tasks to nodes, first fit in registry order.

        Returns the tasks that were admitted; the rest stay queued in order.
        """
        if not self._queue:
            return []

        # A task started elsewhere lives on its node, not here
        for task in [t for t in self._queue if t.started]:
            self._queue.remove(task)
            self._log(
                f"Task {task.name} (ID: {task.id}) was started outside the queue. Removed from the queue.",
                logging.WARNING,
            )

        assigned: List[Task] = []
        for task in list(self._queue):
            node = next((n for n in self._nodes.values() if n.can_accept(task)), None)
            if node is None:
                self._log(f"No available or suitable node found for task {task.name}. Task remains in the queue.")
                continue
            try:
                node.add_task(task)
            except LadsError as e:
                self._log(f"Failed to assign task {task.name} to node {node.name}: {e}", logging.WARNING)
                continue
            assigned.append(task)
            self._log(f"Task {task.name} (ID: {task.id}) assigned to node {node.name} (ID: {node.id}).")

        if assigned:
            self._queue = [task for task in self._queue if not any(task is a for a in assigned)]
        return assigned

    # Node commands

    async def set_node_state(self, identifier: str, target: NodeState) -> List[str]:
        """Delegate a state transition and fold its lines into the audit log"""
        node = self._lookup(identifier)
        if node is None:
            return [f'Node with ID "{identifier}" not found.']

        self._log(f"Requesting state change of node {node.name} (ID: {node.id}) to {target.value}.")
        lines = await node.set_state(target)
        self._audit.extend(lines, prefix=f"[Node: {node.name} ID: {node.id}] ")
        return lines

    def repurpose_node(self, identifier: str, node_class: NodeClass, hierarchical: bool = False) -> List[str]:
        node = self._lookup(identifier)
        if node is None:
            return [f'Node with ID "{identifier}" not found.']

        lines = node.repurpose(node_class, hierarchical)
        self._audit.extend(lines, prefix=f"[Node: {node.name} ID: {node.id}] ")
        return lines

    def get_stats(self) -> ClusterStats:
        """Get pool statistics"""
        by_state = {state.value: 0 for state in NodeState}
        for node in self._nodes.values():
            by_state[node.state.value] += 1
        return ClusterStats(
            total_nodes=len(self._nodes),
            nodes_by_state=by_state,
            queued_tasks=len(self._queue),
            running_tasks=sum(len(node.tasks) for node in self._nodes.values()),
            total_cores=sum(node.cpu_cores for node in self._nodes.values()),
            busy_cores=sum(node.busy_cores for node in self._nodes.values()),
            dispatching=self._running,
        )

    # Background dispatch

    @property
    def is_dispatching(self) -> bool:
        return self._running

    async def start(self):
        """Start processing the queue every dispatch_interval seconds"""
        if self._running:
            return
        if self.config.dispatch_interval is None:
            logger.info("No dispatch interval configured, queue is processed on demand")
            return

        self._running = True
        logger.info(f"Starting dispatch loop (interval: {self.config.dispatch_interval}s)")
        self._dispatch_task = asyncio.create_task(self._dispatch_loop())

    async def stop(self):
        """Stop the dispatch loop"""
        if not self._running:
            return

        self._running = False
        logger.info("Stopping dispatch loop")

        if self._dispatch_task:
            self._dispatch_task.cancel()
            try:
                await self._dispatch_task
            except asyncio.CancelledError:
                pass
            self._dispatch_task = None

    async def _dispatch_loop(self):
        try:
            while self._running:
                try:
                    self.process_queue()
                except Exception as e:
                    logger.error(f"Error in dispatch loop: {e}")
                await asyncio.sleep(self.config.dispatch_interval)
        except asyncio.CancelledError:
            logger.debug("Dispatch loop cancelled")
            raise
