"""
Archive browsing.

Lists previously saved entries of a flow and opens one of them: the
selected entry replaces the session record and the user lands on the
summary page.
"""

import logging
from typing import Any, Dict, List, Mapping

from flowstate.core.composer import parse_variables
from flowstate.core.normalizer import (
    ArchiveTitle,
    extract_entry_data,
    extract_titles,
    unwrap_response,
)
from flowstate.core.store import SessionState
from flowstate.driver.engine import ActionOutcome, FlowDriver, OutcomeStatus
from flowstate.driver.events import DATA_READY
from flowstate.flow.schema import FlowConfig

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_PAGE = "summary.html"


def entry_to_state(payload: Any) -> SessionState:
    """
    Build the session record for a selected archive entry.

    Variables are the response `variables` overlaid with the entry data;
    form holds the entry's scalar fields only.
    """
    data = extract_entry_data(payload)
    envelope = unwrap_response(payload)
    response_variables = envelope.get("variables")
    if not isinstance(response_variables, Mapping):
        response_variables = {}

    form = {k: v for k, v in data.items() if not isinstance(v, (Mapping, list))}
    return SessionState(
        variables={**response_variables, **data},
        form=form,
        initialized=True,
    )


class ArchiveBrowser:
    """
    Archive list and selection against the flow webhook.

    Shares the driver's store, client, gate, host and events. The flow
    config is loaded fresh for each request.
    """

    def __init__(
        self,
        driver: FlowDriver,
        flow_name: str,
        summary_page: str = DEFAULT_SUMMARY_PAGE,
    ):
        self.driver = driver
        self.flow_name = flow_name
        self.summary_page = summary_page

    async def _post(self, config: FlowConfig, variables: Dict[str, Any]) -> Any:
        return await self.driver.client.post_json(
            config.require_webhook(),
            {"variables": variables, "form": {}},
        )

    async def load_titles(self) -> ActionOutcome:
        """Fetch and normalize the archive list; outcome.data is a list of ArchiveTitle."""
        self.driver.host.clear_error()
        with self.driver.gate.hold() as acquired:
            if not acquired:
                return ActionOutcome(OutcomeStatus.SKIPPED)
            try:
                config = await self.driver.config_loader.load()
                base = parse_variables(
                    config.initialization.request_variables,
                    "initialization request_variables",
                )
                variables = {
                    **base,
                    "flow": base.get("flow") or self.flow_name,
                    "step": "archive",
                    "archive": True,
                }
                response = await self._post(config, variables)
                titles: List[ArchiveTitle] = extract_titles(response)
            except Exception as e:
                return self.driver.report_failure(e, "Unable to load archive.")

        logger.info(f"Loaded {len(titles)} archive title(s)")
        self.driver.events.emit(DATA_READY, page=self.driver.page.page, titles=titles)
        return ActionOutcome(OutcomeStatus.COMPLETED, data=titles)

    async def select(self, entry: ArchiveTitle) -> ActionOutcome:
        """Load one entry, store it as the session, and go to the summary page."""
        self.driver.host.clear_error()
        with self.driver.gate.hold() as acquired:
            if not acquired:
                return ActionOutcome(OutcomeStatus.SKIPPED)
            try:
                config = await self.driver.config_loader.load()
                response = await self._post(config, {
                    "flow": self.flow_name,
                    "step": "archive-selection",
                    "title": entry.title,
                    "id": entry.id,
                })
                state = entry_to_state(response)
                self.driver.store.write(state)
            except Exception as e:
                return self.driver.report_failure(e, "Unable to load archive entry.")

        self.driver.host.redirect(self.summary_page)
        return ActionOutcome(OutcomeStatus.COMPLETED, destination=self.summary_page, data=state)
