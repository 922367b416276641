"""Tests for archive browsing."""

import httpx

from flowstate.core.normalizer import ArchiveTitle
from flowstate.core.store import SessionState
from flowstate.driver.archive import ArchiveBrowser, entry_to_state
from flowstate.driver.engine import OutcomeStatus
from flowstate.driver.events import DATA_READY


class TestEntryToState:
    def test_entry_overlays_variables(self):
        payload = [{
            "json": {
                "variables": {"flow": "i-ching-journal", "hexagram": 1},
                "entry": {"title": "Spring", "hexagram": 11, "lines": [6, 7]},
            }
        }]
        state = entry_to_state(payload)
        assert state.variables == {
            "flow": "i-ching-journal",
            "title": "Spring",
            "hexagram": 11,
            "lines": [6, 7],
        }
        assert state.form == {"title": "Spring", "hexagram": 11}
        assert state.initialized is True

    def test_bare_entry(self):
        state = entry_to_state({"title": "Spring"})
        assert state == SessionState({"title": "Spring"}, {"title": "Spring"}, True)


class TestArchiveBrowser:
    async def test_load_titles(self, make_driver, webhook):
        webhook.queue([{"Titles": {"titles": [{"title": "Spring", "id": "s1"}, "Winter"]}}])
        driver = make_driver("archive.html")
        seen = []
        driver.events.on(DATA_READY, lambda **payload: seen.append(payload))

        outcome = await ArchiveBrowser(driver, flow_name="i-ching-journal").load_titles()

        assert outcome.ok
        assert outcome.data == [ArchiveTitle("Spring", "s1"), ArchiveTitle("Winter", "Winter")]
        assert webhook.payloads == [{
            "variables": {"flow": "i-ching-journal", "step": "archive", "archive": True},
            "form": {},
        }]
        assert seen[0]["titles"] == outcome.data

    async def test_flow_name_default(self, make_driver, webhook, flow_config_dict):
        flow_config_dict["initialization"]["request_variables"] = None
        webhook.queue({"titles": []})

        await ArchiveBrowser(make_driver("archive.html"), flow_name="journal").load_titles()

        assert webhook.payloads[0]["variables"]["flow"] == "journal"

    async def test_load_titles_failure(self, make_driver, webhook):
        webhook.queue(httpx.Response(503))
        driver = make_driver("archive.html")

        outcome = await ArchiveBrowser(driver, flow_name="journal").load_titles()

        assert outcome.status == OutcomeStatus.FAILED
        assert driver.host.error_message == "Request failed with status 503"
        assert not driver.gate.busy

    async def test_select(self, make_driver, webhook, store):
        store.write(SessionState(variables={"stale": True}))
        webhook.queue({"casting": {"title": "Spring", "hexagram": 11}})
        driver = make_driver("archive.html")

        outcome = await ArchiveBrowser(driver, flow_name="journal").select(ArchiveTitle("Spring", "s1"))

        assert outcome.destination == "summary.html"
        assert driver.host.location == "summary.html"
        assert webhook.payloads[0]["variables"] == {
            "flow": "journal",
            "step": "archive-selection",
            "title": "Spring",
            "id": "s1",
        }
        assert store.read() == SessionState(
            {"title": "Spring", "hexagram": 11},
            {"title": "Spring", "hexagram": 11},
            True,
        )

    async def test_select_failure_keeps_session(self, make_driver, webhook, store):
        store.write(SessionState(variables={"kept": True}))
        webhook.queue(httpx.Response(500))
        driver = make_driver("archive.html")

        outcome = await ArchiveBrowser(driver, flow_name="journal").select(ArchiveTitle("A", "a"))

        assert outcome.status == OutcomeStatus.FAILED
        assert store.read().variables == {"kept": True}
        assert driver.host.redirects == []
