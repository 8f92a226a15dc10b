"""
Core engine: tasks, nodes and the scheduler that matches them
"""

from .audit import AuditLog
from .errors import (
    LadsError,
    InvalidArgumentError,
    DuplicateNameError,
    NotFoundError,
    NodeNotActiveError,
    InsufficientCapacityError,
    TransitionRejectedError,
    AlreadyRunningError,
    TaskStoppedError,
    TaskStartError,
)
from .ids import NodeIdGenerator
from .node import Node, NodeSnapshot, NodeState
from .scheduler import ClusterStats, Scheduler
from .task import NodeClass, Task, TaskSnapshot

__all__ = [
    'AuditLog',
    'LadsError',
    'InvalidArgumentError',
    'DuplicateNameError',
    'NotFoundError',
    'NodeNotActiveError',
    'InsufficientCapacityError',
    'TransitionRejectedError',
    'AlreadyRunningError',
    'TaskStoppedError',
    'TaskStartError',
    'NodeIdGenerator',
    'Node',
    'NodeSnapshot',
    'NodeState',
    'ClusterStats',
    'Scheduler',
    'NodeClass',
    'Task',
    'TaskSnapshot',
]
