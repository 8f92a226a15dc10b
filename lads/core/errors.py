"""
Exceptions raised by the LADS node/task engine

Admission and validation failures are raised to the caller; transition
failures are reported as log lines instead (see Node.set_state).
"""

from typing import Optional


class LadsError(Exception):
    """Base exception for engine errors"""
    pass


class InvalidArgumentError(LadsError):
    """Raised when constructor or enqueue parameters are invalid"""
    def __init__(self, message: str, argument: Optional[str] = None):
        self.argument = argument
        super().__init__(message)


class DuplicateNameError(InvalidArgumentError):
    """Raised when a live node already uses the requested name"""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Node with name "{name}" already exists.', argument="name")


class NotFoundError(LadsError):
    """Raised when a node id or name cannot be resolved"""
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f'Node with ID "{identifier}" not found.')


class NodeNotActiveError(LadsError):
    """Raised when a task is offered to a node that is not active"""
    def __init__(self, node_name: str, state: str):
        self.node_name = node_name
        self.state = state
        super().__init__(f"Node {node_name} is not active (state: {state}), cannot accept new tasks.")


class InsufficientCapacityError(LadsError):
    """Raised when admitting a task would exceed the node's cores"""
    def __init__(self, node_name: str, available: int, required: int):
        self.node_name = node_name
        self.available = available
        self.required = required
        super().__init__(
            f"Not enough CPU cores available on node {node_name} "
            f"({available} available, {required} required)."
        )


class TransitionRejectedError(LadsError):
    """Raised internally when a state change is illegal or infeasible"""
    def __init__(self, node_name: str, current: str, target: str, reason: str):
        self.node_name = node_name
        self.current = current
        self.target = target
        self.reason = reason
        super().__init__(reason)


class AlreadyRunningError(LadsError):
    """Raised when start() is called twice on the same task"""
    def __init__(self, task_name: str, task_id: int):
        self.task_name = task_name
        self.task_id = task_id
        super().__init__(f"Task {task_id} ({task_name}) is already running.")


class TaskStoppedError(LadsError):
    """Set on a task's completion signal when it is disposed early"""
    def __init__(self, task_name: str, task_id: int):
        self.task_name = task_name
        self.task_id = task_id
        super().__init__(f"Task {task_id} ({task_name}) stopped prematurely.")


class TaskStartError(LadsError):
    """Raised when a node cannot start an admitted task's countdown"""
    def __init__(self, task_name: str, reason: str):
        self.task_name = task_name
        self.reason = reason
        super().__init__(f"Task {task_name} could not be started: {reason}")
