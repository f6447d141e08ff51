def _customer(name="Smith", phone="555-1234", contractor=False, **extra):
    body = {
        "name": name,
        "phone": phone,
        "email": "",
        "addresses": [{"address": "9 Oak Rd", "notes": " back gate "}],
        "contractor": contractor,
    }
    body.update(extra)
    return body


def test_create_and_fetch(client, office):
    r = client.post("/api/customers", json=_customer(), headers=office["headers"])
    assert r.status_code == 201
    created = r.json()
    assert created["email"] is None
    assert created["addresses"] == [{"address": "9 Oak Rd", "notes": "back gate"}]
    assert created["total_deliveries"] == 0

    r = client.get(f"/api/customers/{created['id']}", headers=office["headers"])
    assert r.json()["name"] == "Smith"


def test_create_requires_name_and_address(client, office):
    r = client.post("/api/customers", json=_customer(name=" "), headers=office["headers"])
    assert r.status_code == 422

    r = client.post("/api/customers", json=_customer(addresses=[{"address": "  "}]), headers=office["headers"])
    assert r.status_code == 422


def test_duplicate_name_and_phone(client, office):
    assert client.post("/api/customers", json=_customer(), headers=office["headers"]).status_code == 201
    r = client.post("/api/customers", json=_customer(), headers=office["headers"])
    assert r.status_code == 400
    # same name, different phone is another customer
    assert client.post("/api/customers", json=_customer(phone="555-9999"), headers=office["headers"]).status_code == 201


def test_search_lists_contractors_first(client, office, make_customer):
    make_customer("Greenway Homeowner")
    make_customer("Greenway Landscaping", contractor=True)
    make_customer("Brown")

    r = client.get("/api/customers/search", params={"q": "green"}, headers=office["headers"])
    assert r.status_code == 200
    assert [c["name"] for c in r.json()] == ["Greenway Landscaping", "Greenway Homeowner"]


def test_search_by_phone(client, office, make_customer):
    make_customer("Smith", phone="(413) 555-0198")
    r = client.get("/api/customers/search", params={"q": "0198"}, headers=office["headers"])
    assert [c["name"] for c in r.json()] == ["Smith"]


def test_delivery_count(client, office, make_customer, job_payload):
    customer = make_customer("Johnson Residence")
    for _ in range(2):
        r = client.post("/api/jobs", json=job_payload(customer_id=customer["id"]), headers=office["headers"])
        assert r.status_code == 201

    listed = client.get("/api/customers", headers=office["headers"]).json()
    assert listed[0]["total_deliveries"] == 2


def test_update(client, office, make_customer):
    customer = make_customer("Smith")
    r = client.put(f"/api/customers/{customer['id']}", json={"contractor": True, "notes": "Net 30"}, headers=office["headers"])
    assert r.status_code == 200
    assert r.json()["contractor"] is True
    assert r.json()["notes"] == "Net 30"

    assert client.put("/api/customers/999", json={"notes": "x"}, headers=office["headers"]).status_code == 404


def test_delete_keeps_job_history(client, office, admin, make_customer, job_payload):
    customer = make_customer("Johnson Residence")
    job = client.post("/api/jobs", json=job_payload(customer_id=customer["id"]), headers=office["headers"]).json()

    assert client.delete(f"/api/customers/{customer['id']}", headers=office["headers"]).status_code == 200

    kept = client.get(f"/api/jobs/{job['id']}", headers=admin["headers"]).json()
    assert kept["customer_id"] is None
    assert kept["customer_name"] == "Johnson Residence"


def test_drivers_have_no_customer_access(client, driver):
    assert client.get("/api/customers", headers=driver["headers"]).status_code == 403
    assert client.post("/api/customers", json=_customer(), headers=driver["headers"]).status_code == 403
