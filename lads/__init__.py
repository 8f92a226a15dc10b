"""LADS - Simulated compute node pool with task admission, draining and first-fit scheduling"""

__version__ = "0.1.0"

from lads.config import LadsConfig, load_config, setup_logging
from lads.core.node import Node, NodeState
from lads.core.scheduler import Scheduler
from lads.core.task import NodeClass, Task

__all__ = [
    "LadsConfig",
    "load_config",
    "setup_logging",
    "Node",
    "NodeState",
    "NodeClass",
    "Scheduler",
    "Task",
]
