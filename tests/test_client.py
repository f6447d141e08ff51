from datetime import date

import pytest

from client.api import ApiClient, AuthenticationError, PermissionDeniedError
from client.board import JobBoard
from client.notify import Notifier
from client.session import Session
from client.workflow import JobWorkflow, WorkflowOptions
from core.job_builder import JobForm, ProductLine

PASSWORD = "secret123"


class RecordingHttp:
    """Passes requests to the test app and remembers what was sent."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url.split("/api", 1)[1]))
        return self.inner.request(method, url, **kwargs)


@pytest.fixture
def connect(client):
    def _connect(user=None):
        http = RecordingHttp(client)
        session = Session()
        api = ApiClient("http://testserver/api", session, http=http)
        if user:
            api.login(user["email"], PASSWORD)
            http.calls.clear()
        return api, session, http
    return _connect


def _form(**overrides):
    form = JobForm(
        customer_name="Johnson",
        customer_phone="555-0198",
        address="123 Maple Street",
        delivery_date="2025-03-10",
        products=[ProductLine("Mulch", "3")],
    )
    for key, value in overrides.items():
        setattr(form, key, value)
    return form


# -------------------------------
# ApiClient and Session
# -------------------------------
def test_login_fills_session(connect, office):
    api, session, _ = connect(office)
    assert session.is_authenticated
    assert session.role == "office"
    assert session.user_id == office["id"]
    assert api.me()["email"] == office["email"]


def test_bad_login_keeps_session_empty(connect, office):
    api, session, _ = connect()
    with pytest.raises(AuthenticationError) as exc:
        api.login(office["email"], "wrong-password")
    assert exc.value.message == "Invalid email or password"
    assert not session.is_authenticated


def test_rejected_token_signs_out(connect):
    api, session, _ = connect()
    session.login("expired-token", {"id": 1, "role": "office"})
    signed_out = []
    session.on_logout(signed_out.append)

    with pytest.raises(AuthenticationError):
        api.list_jobs()
    assert not session.is_authenticated
    assert signed_out == [session]


def test_server_message_surfaces(connect, driver):
    api, _, _ = connect(driver)
    with pytest.raises(PermissionDeniedError) as exc:
        api.list_customers()
    assert exc.value.status_code == 403
    assert exc.value.message == "Office or admin role required"


def test_logout_clears_session(connect, office):
    api, session, http = connect(office)
    api.logout()
    assert not session.is_authenticated
    assert http.calls == [("POST", "/auth/logout")]


# -------------------------------
# Add-delivery workflow
# -------------------------------
def test_invalid_form_never_hits_network(connect, office):
    api, _, http = connect(office)
    notifier = Notifier()
    job = JobWorkflow(api, notifier).submit(_form(customer_name=""))

    assert job is None
    assert notifier.messages("error") == ["Customer name is required"]
    assert http.calls == []


def test_new_customer_created_with_job(connect, office, make_product):
    make_product("Mulch", 40, 36)
    api, _, http = connect(office)
    notifier = Notifier()
    workflow = JobWorkflow(api, notifier)

    form = _form()
    assert workflow.reprice(form, workflow.load_catalog()) == 120
    job = workflow.submit(form)

    assert job["total_amount"] == 120
    assert job["customer_id"] is not None
    assert api.list_customers()[0]["id"] == job["customer_id"]
    assert notifier.messages("success") == ["Delivery scheduled successfully!"]
    assert ("POST", "/customers") in http.calls


def test_quantity_edit_after_reprice_is_priced_on_submit(connect, office, make_product):
    make_product("Mulch", 40, 36)
    api, _, _ = connect(office)
    workflow = JobWorkflow(api, Notifier())

    form = _form()
    workflow.reprice(form, workflow.load_catalog())
    form.products[0].quantity = "4"
    job = workflow.submit(form)

    assert job["total_amount"] == 160
    assert job["products"][0]["total_price"] == 160


def test_selected_customer_is_not_recreated(connect, office, make_product, make_customer):
    make_product("Mulch", 40, 36)
    acme = make_customer("Acme Landscaping", contractor=True)
    api, _, http = connect(office)
    workflow = JobWorkflow(api, Notifier())

    selected = {"id": acme["id"], "name": acme["name"], "contractor": True}
    form = _form(customer_name="Acme Landscaping")
    assert workflow.reprice(form, workflow.load_catalog(selected), selected) == 108

    job = workflow.submit(form, selected_customer=selected)
    assert job["customer_id"] == acme["id"]
    assert job["contractor_discount"] is True
    assert job["products"][0]["price_type"] == "contractor"
    assert ("POST", "/customers") not in http.calls


def test_failed_customer_create_still_books_job(connect, office, make_customer):
    make_customer("Johnson", phone="555-0198")
    api, _, _ = connect(office)
    notifier = Notifier()

    job = JobWorkflow(api, notifier).submit(_form())

    assert job is not None
    assert job["customer_id"] is None
    assert len(notifier.messages("warning")) == 1
    assert notifier.messages("success") == ["Delivery scheduled successfully!"]


def test_to_be_scheduled_submission(connect, office):
    api, _, _ = connect(office)
    notifier = Notifier()
    options = WorkflowOptions(use_collection_amount=True)

    job = JobWorkflow(api, notifier, options).submit(
        _form(delivery_date="", collection_amount="65"), to_be_scheduled=True
    )
    assert job["status"] == "to_be_scheduled"
    assert job["total_amount"] == 65
    assert notifier.messages("success") == ["Delivery added to the to-be-scheduled list"]


def test_server_rejection_is_reported(connect, driver):
    api, _, _ = connect(driver)
    notifier = Notifier()
    assert JobWorkflow(api, notifier).submit(_form(customer_name="Acme"), selected_customer={"id": 1}) is None
    assert notifier.messages("error") == ["Office or admin role required"]


# -------------------------------
# Delivery board
# -------------------------------
@pytest.fixture
def booked(client, office, driver, job_payload):
    """Two deliveries on 2025-03-10: one for driver1 ($50), one unassigned."""
    mine = job_payload(
        assigned_driver=driver["id"],
        products=[{"product_name": "Mulch", "quantity": 1, "unit": "yards", "unit_price": 50, "total_price": 50}],
    )
    first = client.post("/api/jobs", json=mine, headers=office["headers"]).json()
    second = client.post("/api/jobs", json=job_payload(customer_name="Brown"), headers=office["headers"]).json()
    return first, second


def test_driver_board_and_completion(connect, driver, booked):
    mine, _ = booked
    api, session, _ = connect(driver)
    board = JobBoard(api, Notifier(), session)

    assert [j["id"] for j in board.refresh()] == [mine["id"]]
    assert board.payment(mine["id"]).amount_due == 50

    done = board.complete(mine["id"], driver_notes="By the shed", payment_amount="50")
    assert done["status"] == "completed"
    assert done["paid"] is True
    assert board.find(mine["id"])["status"] == "completed"

    summary = board.payment(mine["id"])
    assert summary.is_fully_paid
    assert summary.amount_due == 0


def test_rejected_completion_leaves_board_unchanged(client, connect, office, driver, booked):
    mine, _ = booked
    api, session, _ = connect(driver)
    notifier = Notifier()
    board = JobBoard(api, notifier, session)
    board.refresh()

    # office cancels it behind the driver's back
    r = client.put(f"/api/jobs/{mine['id']}", json={"status": "cancelled"}, headers=office["headers"])
    assert r.status_code == 200

    assert board.complete(mine["id"]) is None
    assert notifier.messages("error") == ["Failed to complete delivery"]
    assert board.find(mine["id"])["status"] == "scheduled"


def test_overpayment_caught_before_sending(connect, driver, booked):
    mine, _ = booked
    api, session, http = connect(driver)
    notifier = Notifier()
    board = JobBoard(api, notifier, session)
    board.refresh()
    http.calls.clear()

    assert board.complete(mine["id"], payment_amount=80) is None
    assert notifier.messages("error") == ["Payment exceeds amount due"]
    assert http.calls == []


def test_driver_cannot_complete_someone_elses_job(connect, driver, booked):
    _, unassigned = booked
    api, session, _ = connect(driver)
    notifier = Notifier()
    board = JobBoard(api, notifier, session)
    board.jobs = [unassigned]

    assert board.complete(unassigned["id"]) is None
    assert notifier.messages("error") == ["You cannot complete this delivery"]


def test_office_board_views(connect, office, booked):
    api, session, _ = connect(office)
    board = JobBoard(api, Notifier(), session)
    board.refresh()

    day = date(2025, 3, 10)
    assert len(board.visible(date=day)) == 2
    assert [j["customer_name"] for j in board.visible(date=day, search_term="brown")] == ["Brown"]
    summary = board.summary(day)
    assert summary["today_jobs"] == 2
    assert summary["unpaid_jobs"] == 2
    assert summary["unscheduled_jobs"] == 0
    assert len(board.calendar(day)) == 14


def test_schedule_from_board(connect, office, driver, job_payload, client):
    waiting = client.post("/api/jobs", json=job_payload(status="to_be_scheduled"), headers=office["headers"]).json()
    api, session, _ = connect(office)
    notifier = Notifier()
    board = JobBoard(api, notifier, session)
    board.refresh()
    assert [j["id"] for j in board.visible(mode="unscheduled")] == [waiting["id"]]

    job = board.schedule(waiting["id"], "2025-03-12", str(driver["id"]))
    assert job["status"] == "scheduled"
    assert board.visible(mode="unscheduled") == []
    assert notifier.messages("success") == ["Delivery scheduled successfully!"]


def test_only_admin_deletes_from_board(connect, office, admin, booked):
    mine, _ = booked
    api, session, http = connect(office)
    notifier = Notifier()
    board = JobBoard(api, notifier, session)
    board.refresh()
    http.calls.clear()

    assert board.delete(mine["id"]) is False
    assert http.calls == []
    assert len(board.jobs) == 2

    api, session, _ = connect(admin)
    board = JobBoard(api, Notifier(), session)
    board.refresh()
    assert board.delete(mine["id"]) is True
    assert [j["id"] for j in board.jobs] == [booked[1]["id"]]


def test_missing_job_dropped_from_board(client, connect, office, admin, booked):
    mine, _ = booked
    api, session, _ = connect(office)
    notifier = Notifier()
    board = JobBoard(api, notifier, session)
    board.refresh()

    client.delete(f"/api/jobs/{mine['id']}", headers=admin["headers"])

    assert board.open_job(mine["id"]) is None
    assert notifier.messages("error") == ["Job not found"]
    assert board.find(mine["id"]) is None


def test_logout_clears_board(connect, office, booked):
    api, session, _ = connect(office)
    board = JobBoard(api, Notifier(), session)
    board.refresh()
    api.logout()
    assert board.jobs == []
