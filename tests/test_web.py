import re
import sys
import threading
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from signup.application import create_app
from signup.models import VolunteerEntry, empty_record
from signup.records import MemoryRecordStore
from signup.settings import Settings


ADMIN_CODE = "open-sesame"
TIMESTAMP = "2026-02-20T17:04:05.123Z"


def _client(records: MemoryRecordStore, *, admin_code: str = ADMIN_CODE) -> TestClient:
    app = create_app(
        settings=Settings(backend="memory", secure_cookies=False),
        records=records,
        session_secret="tests-secret-key",
        admin_code=admin_code,
    )
    return TestClient(app)


def _full_thursday() -> MemoryRecordStore:
    record = empty_record()
    record["thursday"] = [
        VolunteerEntry(name=f"Volunteer {index}", signed_up_at=TIMESTAMP, id=index)
        for index in range(15)
    ]
    return MemoryRecordStore.seeded(record)


@pytest.fixture()
def records() -> MemoryRecordStore:
    return MemoryRecordStore.seeded(empty_record())


def test_signup_page_shows_capacity_and_disabled_submit(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        response = client.get("/")

    assert response.status_code == 200
    assert "0/15" in response.text
    assert "Select a Day Above" in response.text
    assert "Thursday, Feb 26" in response.text
    assert "Sunday, Mar 1" in response.text


def test_submit_for_one_day_shows_confirmation(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        toggled = client.post("/days/toggle", data={"day": "thursday", "name": ""})
        assert toggled.status_code == 200
        assert "Sign Up to Volunteer" in toggled.text

        response = client.post("/signup", data={"name": "Alex Kim"})

    assert response.status_code == 200
    assert "You're Signed Up!" in response.text
    assert "<strong>Alex</strong>" in response.text
    assert "Thursday, Feb 26 • 5-9 PM • SETUP" in response.text
    assert "TAKEDOWN" not in response.text
    assert "calendar.google.com/calendar/render" in response.text
    assert "/calendar/thursday.ics" in response.text
    assert "mailto:?subject=" in response.text
    assert len(records.payload["thursday"]) == 1
    assert records.payload["thursday"][0]["name"] == "Alex Kim"
    assert records.payload["sunday"] == []


def test_full_day_cannot_be_selected_and_other_day_still_fills() -> None:
    records = _full_thursday()
    with _client(records) as client:
        page = client.post("/days/toggle", data={"day": "thursday"})
        assert "15/15" in page.text
        assert "Select a Day Above" in page.text

        client.post("/days/toggle", data={"day": "sunday"})
        client.post("/signup", data={"name": "Sam"})

    assert len(records.payload["thursday"]) == 15
    assert [entry["name"] for entry in records.payload["sunday"]] == ["Sam"]


def test_selecting_both_days_updates_button_label(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        client.post("/days/toggle", data={"day": "thursday"})
        page = client.post("/days/toggle", data={"day": "sunday"})
        assert "Sign Up for Both Days" in page.text

        page = client.post("/days/toggle", data={"day": "sunday"})
        assert "Sign Up to Volunteer" in page.text


def test_blank_name_shows_inline_error(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        client.post("/days/toggle", data={"day": "sunday"})
        response = client.post("/signup", data={"name": "   "})

    assert "Please enter your name to sign up" in response.text
    assert records.saves == 0


def test_submit_without_days_stays_on_form(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        response = client.post("/signup", data={"name": "Alex"})

    assert "Select a Day Above" in response.text
    assert "Please enter your name" not in response.text
    assert records.saves == 0


def test_confirmation_shown_even_when_save_fails(records: MemoryRecordStore) -> None:
    records.fail_saves = True
    with _client(records) as client:
        client.post("/days/toggle", data={"day": "sunday"})
        response = client.post("/signup", data={"name": "Jordan"})
        availability = client.get("/api/availability").json()

    assert "You're Signed Up!" in response.text
    assert records.payload == {"thursday": [], "sunday": []}
    sunday = next(day for day in availability["days"] if day["day"] == "sunday")
    assert sunday["count"] == 1


def test_sign_up_another_resets_form(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        client.post("/days/toggle", data={"day": "thursday"})
        client.post("/signup", data={"name": "Alex Kim"})
        response = client.post("/another")

    assert "Select a Day Above" in response.text
    assert "1/15" in response.text
    assert 'value="Alex Kim"' not in response.text


def test_wrong_admin_code_never_opens_dashboard(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        client.post("/admin/prompt")
        response = client.post("/admin/unlock", data={"code": "guess"})
        assert "Admin Dashboard" not in response.text
        assert 'name="code"' in response.text

        removed = client.post("/admin/clear", data={"confirm": "yes"})
        assert "Admin Dashboard" not in removed.text

    assert records.saves == 0


def test_admin_can_remove_and_clear(records: MemoryRecordStore) -> None:
    record = empty_record()
    record["thursday"] = [
        VolunteerEntry(name="Alex Kim", signed_up_at=TIMESTAMP, id=1771600000000.25),
        VolunteerEntry(name="Sam Park", signed_up_at=TIMESTAMP, id=1771600000001.5),
    ]
    record["sunday"] = [VolunteerEntry(name="Jordan Lee", signed_up_at=TIMESTAMP, id=7)]
    records = MemoryRecordStore.seeded(record)

    with _client(records) as client:
        dashboard = client.post("/admin/unlock", data={"code": ADMIN_CODE})
        assert "Admin Dashboard" in dashboard.text
        assert "2/15" in dashboard.text
        assert "1. Alex Kim" in dashboard.text

        after_remove = client.post(
            "/admin/remove",
            data={"day": "thursday", "entry_id": "1771600000000.25"},
        )
        assert "Alex Kim" not in after_remove.text
        assert [entry["name"] for entry in records.payload["thursday"]] == ["Sam Park"]
        assert [entry["name"] for entry in records.payload["sunday"]] == ["Jordan Lee"]

        confirm = client.post("/admin/clear")
        assert "Clear ALL signups?" in confirm.text
        assert len(records.payload["sunday"]) == 1

        cleared = client.post("/admin/clear", data={"confirm": "yes"})
        assert "No signups yet" in cleared.text
        assert records.payload == {"thursday": [], "sunday": []}

        back = client.post("/admin/back")
        assert "Admin Dashboard" not in back.text
        assert "Select a Day Above" in back.text


def test_admin_access_hidden_without_passcode(records: MemoryRecordStore) -> None:
    with _client(records, admin_code="") as client:
        page = client.get("/")
        unlocked = client.post("/admin/unlock", data={"code": ""})

    assert "Admin Access" not in page.text
    assert "Admin Dashboard" not in unlocked.text


def test_remove_requires_admin_view() -> None:
    records = _full_thursday()
    with _client(records) as client:
        client.post("/admin/remove", data={"day": "thursday", "entry_id": "0"})

    assert records.saves == 0


def test_calendar_file_download(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        response = client.get("/calendar/sunday.ics")
        missing = client.get("/calendar/monday.ics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/calendar")
    assert "elite-core-cup-takedown.ics" in response.headers["content-disposition"]
    assert "DTSTART:20260301T180000" in response.text
    assert missing.status_code == 404


def test_unknown_day_toggle_is_not_found(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        response = client.post("/days/toggle", data={"day": "friday"})

    assert response.status_code == 404


def test_availability_endpoint_reports_counts() -> None:
    with _client(_full_thursday()) as client:
        payload = client.get("/api/availability").json()
        health = client.get("/healthz").json()

    assert payload["days"][0] == {
        "day": "thursday",
        "label": "Thursday, Feb 26",
        "count": 15,
        "capacity": 15,
        "remaining": 0,
        "full": True,
    }
    assert payload["days"][1]["remaining"] == 15
    assert health == {"status": "ok"}


def test_unreachable_store_starts_fresh() -> None:
    with _client(MemoryRecordStore(fail_loads=True)) as client:
        response = client.get("/")

    assert response.status_code == 200
    assert "0/15" in response.text


def test_session_secret_is_required(records: MemoryRecordStore) -> None:
    with pytest.raises(RuntimeError):
        create_app(settings=Settings(backend="memory"), records=records)


def _signup_form(html: str) -> str:
    match = re.search(r'<form[^>]*class="signup-form"[^>]*>(.*?)</form>', html, re.DOTALL)
    assert match is not None
    return match.group(1)


def test_enter_in_name_field_submits_signup(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        page = client.post("/days/toggle", data={"day": "sunday"})

    form = _signup_form(page.text)
    first_button = re.search(r"<button\b[^>]*>", form, re.DOTALL)
    assert first_button is not None
    tag = first_button.group(0)
    assert 'type="submit"' in tag
    assert "formaction" not in tag
    assert "disabled" not in tag
    assert form.index(tag) < form.index('name="name"')


def test_enter_submits_even_when_first_day_is_full() -> None:
    with _client(_full_thursday()) as client:
        client.post("/days/toggle", data={"day": "sunday"})
        page = client.get("/")
        first_button = re.search(r"<button\b[^>]*>", _signup_form(page.text), re.DOTALL)
        assert "formaction" not in first_button.group(0)

        response = client.post("/signup", data={"name": "Sam"})

    assert "You're Signed Up!" in response.text


class _ThreadRecordingStore(MemoryRecordStore):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.write_threads = []

    def _write(self, payload) -> None:
        self.write_threads.append(threading.get_ident())
        super()._write(payload)


def test_record_saves_run_off_the_event_loop_thread() -> None:
    records = _ThreadRecordingStore(payload={"thursday": [], "sunday": []})
    app = create_app(
        settings=Settings(backend="memory", secure_cookies=False),
        records=records,
        session_secret="tests-secret-key",
        admin_code=ADMIN_CODE,
    )

    @app.get("/loop-thread")
    async def loop_thread():
        return {"ident": threading.get_ident()}

    with TestClient(app) as client:
        loop_ident = client.get("/loop-thread").json()["ident"]
        client.post("/days/toggle", data={"day": "thursday"})
        client.post("/signup", data={"name": "Alex Kim"})
        client.post("/another")
        client.post("/admin/unlock", data={"code": ADMIN_CODE})
        entry_id = records.payload["thursday"][0]["id"]
        client.post("/admin/remove", data={"day": "thursday", "entry_id": str(entry_id)})
        client.post("/admin/clear", data={"confirm": "yes"})

    assert len(records.write_threads) == 3
    assert loop_ident not in records.write_threads


def test_share_script_copies_current_page_address(records: MemoryRecordStore) -> None:
    with _client(records) as client:
        response = client.get("/static/js/share.js")

    assert response.status_code == 200
    assert "writeText(window.location.href)" in response.text
