"""Core modules for screenshot detection and renaming."""

from .models import (
    CandidateFile,
    CandidateTable,
    EventKind,
    FileEvent,
    RenameOutcome,
    RenameRecord,
    WatchTarget,
    normalise_path,
)
from .scheduler import Scheduler
from .debounce import Debouncer
from .stability import StabilityPoller
from .ledger import FeedbackLedger
from .naming import sanitize_name, build_target_path
from .renamer import RenameCoordinator, rename_no_clobber
from .pipeline import WatchPipeline
from .watcher import DirectoryObserver, ScreenshotEventHandler
from .access import AccessGrant, DirectoryAccess, scoped_access
from .session import ScreenshotMonitor, WatchSession

__all__ = [
    'CandidateFile',
    'CandidateTable',
    'EventKind',
    'FileEvent',
    'RenameOutcome',
    'RenameRecord',
    'WatchTarget',
    'normalise_path',
    'Scheduler',
    'Debouncer',
    'StabilityPoller',
    'FeedbackLedger',
    'sanitize_name',
    'build_target_path',
    'RenameCoordinator',
    'rename_no_clobber',
    'WatchPipeline',
    'DirectoryObserver',
    'ScreenshotEventHandler',
    'AccessGrant',
    'DirectoryAccess',
    'scoped_access',
    'ScreenshotMonitor',
    'WatchSession'
]
