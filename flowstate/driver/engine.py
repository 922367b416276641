"""
Flow driver.

Orchestrates the core pieces for one page:

    UNINITIALIZED -> INITIALIZING -> READY

- load_page(): loads the flow config, then either runs the landing page
  round trip and redirects (terminal for that page), or runs the idempotent
  initialization check and enters READY.
- submit_form() / invoke_action(): compose -> gate -> send -> normalize ->
  persist -> navigate, as one user-visible step.

Every FlowError is caught here, at the action boundary, and shown through the
PageHost. The gate is released on every exit path.
"""

import functools
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from flowstate.core.composer import build_request_variables
from flowstate.core.errors import FlowError
from flowstate.core.gate import SubmissionGate
from flowstate.core.navigation import (
    action_candidates,
    initialization_candidates,
    resolve_next,
    submission_candidates,
)
from flowstate.core.normalizer import normalize_response
from flowstate.core.precedence import first_non_empty
from flowstate.core.store import MemoryStorage, SessionState, SessionStore
from flowstate.driver.events import DATA_READY, EventBus
from flowstate.driver.page import FormSubmission, PageContext, PageHost, RecordingHost, Trigger
from flowstate.flow.parser import FlowConfigLoader
from flowstate.flow.schema import FlowConfig
from flowstate.transport.webhook import WebhookClient

if TYPE_CHECKING:
    import httpx

    from flowstate.config.settings import FlowStateSettings

logger = logging.getLogger(__name__)


class DriverState(Enum):
    """Page lifecycle of the driver."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class OutcomeStatus(Enum):
    """Result of one user-visible step."""

    COMPLETED = "completed"  # Round trip done (and navigation, if any)
    SKIPPED = "skipped"      # Gate was busy; nothing happened
    FAILED = "failed"        # Error shown to the user


@dataclass
class ActionOutcome:
    """What a trigger did."""

    status: OutcomeStatus
    destination: Optional[str] = None
    error: Optional[FlowError] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.COMPLETED


def require_ready(method):
    """
    Decorator to ensure the page reached READY before a trigger runs.
    Raises RuntimeError otherwise.
    """
    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        if self.state != DriverState.READY:
            raise RuntimeError(
                f"{type(self).__name__} is {self.state.value}. Call load_page() first."
            )
        if inspect.iscoroutinefunction(method):
            return await method(self, *args, **kwargs)
        return method(self, *args, **kwargs)
    return wrapper


class FlowDriver:
    """
    Drives one page of a flow against the flow's webhook.

    Example:
        ```python
        driver = FlowDriver(
            page=PageContext.from_url("step2.html?casting_id=42"),
            store=SessionStore(MemoryStorage()),
            client=WebhookClient(base_url="http://localhost:8080/"),
            config_loader=FlowConfigLoader("config.json"),
        )
        await driver.load_page()
        outcome = await driver.submit_form(FormSubmission(fields={"name": "Lee"}))
        ```
    """

    def __init__(
        self,
        page: PageContext,
        store: SessionStore,
        client: WebhookClient,
        config_loader: FlowConfigLoader,
        host: Optional[PageHost] = None,
        gate: Optional[SubmissionGate] = None,
        events: Optional[EventBus] = None,
    ):
        self.page = page
        self.store = store
        self.client = client
        self.config_loader = config_loader
        self.host = host or RecordingHost()
        self.gate = gate or SubmissionGate()
        self.events = events or EventBus()
        self.config: Optional[FlowConfig] = None
        self._state = DriverState.UNINITIALIZED

    @classmethod
    def from_settings(
        cls,
        settings: "FlowStateSettings",
        page: PageContext,
        host: Optional[PageHost] = None,
        transport: Optional["httpx.AsyncBaseTransport"] = None,
    ) -> "FlowDriver":
        """Wire a driver from settings."""
        client = WebhookClient(
            base_url=settings.flow.base_url,
            timeout=settings.webhook.timeout,
            headers=settings.webhook.headers,
            transport=transport,
        )
        return cls(
            page=page,
            store=SessionStore.from_settings(settings),
            client=client,
            config_loader=FlowConfigLoader(
                settings.flow.config_path,
                base_url=settings.flow.base_url,
                http=client.http,
            ),
            host=host,
            gate=SubmissionGate(default_message=settings.status.default_message),
        )

    @property
    def state(self) -> DriverState:
        return self._state

    async def aclose(self) -> None:
        await self.client.aclose()

    # -----------------------------------------------------------------
    # Page load
    # -----------------------------------------------------------------

    async def load_page(self) -> ActionOutcome:
        """
        Initialize the page.

        Landing page: always performs the initialization round trip, then
        redirects to next_step or start_page. Other pages: performs it only
        when the session is not yet initialized, then enters READY and emits
        page:data-ready.
        """
        self.host.clear_error()
        self._state = DriverState.INITIALIZING

        try:
            config = await self.config_loader.load()
            config.require_webhook()
            self.config = config

            if self.page.is_landing:
                # Terminal for this page: it redirects away on success.
                outcome = await self._initialize(config, navigate=True)
                if not outcome.ok:
                    self._state = DriverState.UNINITIALIZED
                return outcome

            session = self.store.read()
            if session.initialized:
                logger.debug(f"Session already initialized; skipping round trip on {self.page.page}")
            else:
                outcome = await self._initialize(config, navigate=False)
                if not outcome.ok:
                    self._state = DriverState.UNINITIALIZED
                    return outcome
        except Exception as e:
            self._state = DriverState.UNINITIALIZED
            return self.report_failure(e, "Something went wrong.")

        self._state = DriverState.READY
        logger.info(f"Page {self.page.page} ready")
        self.events.emit(DATA_READY, page=self.page.page, state=self.store.read())
        return ActionOutcome(OutcomeStatus.COMPLETED)

    async def _initialize(self, config: FlowConfig, navigate: bool) -> ActionOutcome:
        init = config.initialization
        with self.gate.hold() as acquired:
            if not acquired:
                return ActionOutcome(OutcomeStatus.SKIPPED)
            try:
                session = self.store.read()
                variables = build_request_variables(
                    state_variables=session.variables,
                    config_variables=init.request_variables,
                    query=self.page.query,
                    config_source="initialization request_variables",
                )
                payload = {"init": True, "variables": variables, "form": session.form}

                response = await self.client.post_json(config.require_webhook(), payload)
                normalized = normalize_response(response)
                next_state = (
                    session.merge_variables(normalized.variables)
                    .merge_form(normalized.form)
                    .mark_initialized()
                )
                self.store.write(next_state)
                logger.info(
                    f"Session initialized on {self.page.page} "
                    f"with {len(normalized.variables)} response variable(s)"
                )

                if not navigate:
                    return ActionOutcome(OutcomeStatus.COMPLETED, data=next_state)

                destination = resolve_next(
                    initialization_candidates(normalized.next_step, init.start_page),
                    "No next_step or start_page provided for initialization.",
                )
                self.host.redirect(destination)
                return ActionOutcome(OutcomeStatus.COMPLETED, destination=destination, data=next_state)
            except Exception as e:
                return self.report_failure(e, "Something went wrong.")

    # -----------------------------------------------------------------
    # Triggers
    # -----------------------------------------------------------------

    @require_ready
    async def submit_form(self, submission: FormSubmission) -> ActionOutcome:
        """Send the form and navigate to the resolved next page."""
        self.host.clear_error()
        form = submission.form
        submitter = submission.submitter or Trigger()
        message = first_non_empty([submitter.waiting_message, form.waiting_message])

        with self.gate.hold(message) as acquired:
            if not acquired:
                return ActionOutcome(OutcomeStatus.SKIPPED)
            try:
                step = self.config.step_for(self.page.page)
                session = self.store.read()
                fields = dict(submission.fields)
                variables = build_request_variables(
                    state_variables=session.variables,
                    config_variables=step.request_variables,
                    query=self.page.query,
                    form_variables=form.request_variables,
                    submitter_variables=submitter.request_variables,
                )
                response = await self.client.post_json(
                    self.config.require_webhook(),
                    {"form": fields, "variables": variables},
                )
                normalized = normalize_response(response)
                next_state = session.merge_form(fields).merge_variables(normalized.variables)
                return self._persist_and_navigate(
                    next_state,
                    submission_candidates(
                        normalized.next_step,
                        submitter.next_step_fallback,
                        form.next_step_fallback,
                        step.next_step_fallback,
                    ),
                )
            except Exception as e:
                return self.report_failure(e, "Unable to submit form.")

    @require_ready
    async def invoke_action(self, action: Trigger) -> ActionOutcome:
        """Run a discrete action (a button outside any form)."""
        self.host.clear_error()

        with self.gate.hold(action.waiting_message) as acquired:
            if not acquired:
                return ActionOutcome(OutcomeStatus.SKIPPED)
            try:
                step = self.config.step_for(self.page.page)
                session = self.store.read()
                variables = build_request_variables(
                    state_variables=session.variables,
                    config_variables=step.request_variables,
                    query=self.page.query,
                    submitter_variables=action.request_variables,
                )
                response = await self.client.post_json(
                    self.config.require_webhook(),
                    {"form": {}, "variables": variables},
                )
                normalized = normalize_response(response)
                return self._persist_and_navigate(
                    session.merge_variables(normalized.variables),
                    action_candidates(
                        normalized.next_step,
                        action.next_step_fallback,
                        step.next_step_fallback,
                    ),
                    message="No next_step or fallback defined for this action.",
                )
            except Exception as e:
                return self.report_failure(e, "Unable to submit action.")

    def reset(self) -> None:
        """Destroy the session; the next read yields defaults."""
        self.store.clear()

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    def _persist_and_navigate(
        self,
        next_state: SessionState,
        candidates: list,
        message: Optional[str] = None,
    ) -> ActionOutcome:
        # Response data is kept even when no destination resolves.
        self.store.write(next_state)
        destination = resolve_next(candidates, message)
        self.host.redirect(destination)
        return ActionOutcome(OutcomeStatus.COMPLETED, destination=destination, data=next_state)

    def report_failure(self, error: Exception, fallback: str) -> ActionOutcome:
        if isinstance(error, FlowError):
            logger.warning(f"{type(error).__name__} on {self.page.page}: {error}")
            flow_error = error
        else:
            logger.exception(f"Unexpected error on {self.page.page}")
            flow_error = FlowError(str(error) or fallback)
        self.host.show_error(flow_error.message)
        return ActionOutcome(OutcomeStatus.FAILED, error=flow_error)

    def describe(self) -> Dict[str, Any]:
        """Snapshot for CLI output and debugging."""
        return {
            "page": self.page.page,
            "landing": self.page.is_landing,
            "state": self._state.value,
            "gate": self.gate.state.value,
            "session": self.store.read().to_dict(),
        }
