"""extsync: keeps extension build output in sync during development.

A long-running watch session that:
  - wipes and recreates the bundle directory on start
  - opens incremental build contexts for eligible extensions
  - builds every extension once, then rebuilds only what each
    reconciled change batch touches
  - purges the output of deleted extensions
  - notifies listeners once per processed batch and once when ready
"""

__version__ = "0.1.0"
__description__ = "Development-mode extension build orchestrator"

from extsync.core.watcher import AppEventWatcher
from extsync.models.events import AppEvent, EventType, ExtensionEvent

__all__ = ["AppEventWatcher", "AppEvent", "EventType", "ExtensionEvent", "__version__"]
