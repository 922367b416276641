"""
Flow driver module.

- Engine: FlowDriver, the page lifecycle and trigger orchestration
- Page: PageContext, Trigger, FormSubmission, PageHost
- Events: EventBus and the page:data-ready signal
- Archive: ArchiveBrowser for listing and reopening saved entries
"""

from flowstate.driver.engine import (
    ActionOutcome,
    DriverState,
    FlowDriver,
    OutcomeStatus,
)
from flowstate.driver.page import (
    FormSubmission,
    PageContext,
    PageHost,
    RecordingHost,
    Trigger,
)
from flowstate.driver.events import DATA_READY, EventBus
from flowstate.driver.archive import ArchiveBrowser, entry_to_state

__all__ = [
    # Engine
    "ActionOutcome",
    "DriverState",
    "FlowDriver",
    "OutcomeStatus",
    # Page
    "FormSubmission",
    "PageContext",
    "PageHost",
    "RecordingHost",
    "Trigger",
    # Events
    "DATA_READY",
    "EventBus",
    # Archive
    "ArchiveBrowser",
    "entry_to_state",
]
