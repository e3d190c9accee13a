# Application SRS Package
from .adaptive import AdaptiveScheduler
from .quality import determine_quality
from .scheduler import BasicScheduler, Scheduler, default_scheduler

__all__ = [
    "Scheduler",
    "BasicScheduler",
    "AdaptiveScheduler",
    "default_scheduler",
    "determine_quality",
]
