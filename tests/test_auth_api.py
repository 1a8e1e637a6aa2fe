from conftest import TEST_PASSWORD, admin_headers, customer_headers
from coworks import storage
from coworks.models import Customer, VerificationStatus


def register(client, email="asha@example.com", password="Str0ngPassw0rd", **extra):
    body = {"name": "Asha Rao", "email": email, "password": password, "phone": "98765 43210"}
    body.update(extra)
    return client.post("/auth/register", json=body)


class TestRegistration:
    def test_register_returns_token_and_profile(self, client, db):
        response = register(client, email="Asha@Example.com")

        assert response.status_code == 201
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["customer"]["email"] == "asha@example.com"
        assert body["customer"]["phone"] == "+919876543210"
        assert body["customer"]["verification_status"] == VerificationStatus.PENDING
        assert body["customer"]["coin_balance"] == 0

        profile = client.get("/profile", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert profile.json()["name"] == "Asha Rao"

    def test_duplicate_email(self, client):
        register(client)
        response = register(client)
        assert response.status_code == 409

    def test_weak_password(self, client):
        response = register(client, password="short")

        assert response.status_code == 400
        assert "Password must be at least 8 characters long" in response.json()["detail"]["feedback"]

    def test_invalid_email_and_phone(self, client):
        assert register(client, email="not-an-email").status_code == 422
        assert register(client, phone="12345").status_code == 422


class TestLogin:
    def test_login(self, client, make_customer):
        customer = make_customer()

        response = client.post("/auth/login", json={"email": customer.email.upper(), "password": TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json()["customer"]["id"] == customer.id

    def test_wrong_password(self, client, make_customer):
        customer = make_customer()
        response = client.post("/auth/login", json={"email": customer.email, "password": "Wr0ngPassword"})
        assert response.status_code == 401

    def test_logout_revokes_token(self, client, make_customer):
        customer = make_customer()
        headers = customer_headers(customer)

        assert client.post("/auth/logout", headers=headers).status_code == 200

        response = client.get("/profile", headers=headers)
        assert response.status_code == 401
        assert response.json()["detail"] == "Token has been revoked"

    def test_malformed_token(self, client):
        response = client.get("/profile", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    def test_admin_token_is_not_a_customer_token(self, client, make_admin):
        response = client.get("/profile", headers=admin_headers(make_admin()))
        assert response.status_code == 401


class TestPasswordReset:
    def test_reset_flow(self, client, make_customer, queued_jobs):
        customer = make_customer()

        response = client.post("/auth/forgot-password", json={"email": customer.email})

        assert response.status_code == 200
        name, (email, link) = queued_jobs[0]
        assert name == "send_password_reset_email_task"
        assert email == customer.email
        token = link.split("token=", 1)[1]

        reset = client.post("/auth/reset-password", json={"token": token, "new_password": "N3wPassword42"})
        assert reset.status_code == 200

        login = client.post("/auth/login", json={"email": customer.email, "password": "N3wPassword42"})
        assert login.status_code == 200

        reused = client.post("/auth/reset-password", json={"token": token, "new_password": "An0therPass99"})
        assert reused.status_code == 400

    def test_unknown_email_gets_the_same_answer(self, client, make_customer, queued_jobs):
        make_customer()

        unknown = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})
        malformed = client.post("/auth/forgot-password", json={"email": "nobody"})

        assert unknown.status_code == malformed.status_code == 200
        assert unknown.json() == malformed.json()
        assert queued_jobs == []

    def test_bad_token(self, client):
        response = client.post("/auth/reset-password", json={"token": "bogus", "new_password": "N3wPassword42"})
        assert response.status_code == 400


class TestProfile:
    def test_update_profile(self, client, make_customer):
        customer = make_customer()

        response = client.put(
            "/profile",
            json={"company_name": "Acme Labs", "phone": "+91 91234 56789"},
            headers=customer_headers(customer),
        )

        assert response.status_code == 200
        assert response.json()["company_name"] == "Acme Labs"
        assert response.json()["phone"] == "+919123456789"

    def test_verification_status(self, client, make_customer):
        pending = make_customer(verified=False)
        approved = make_customer()

        incomplete = client.get("/profile/verification-status", headers=customer_headers(pending)).json()
        complete = client.get("/profile/verification-status", headers=customer_headers(approved)).json()

        assert incomplete["missing_fields"] == ["proof_of_identity", "proof_of_address"]
        assert incomplete["can_book"] is False
        assert complete["is_complete"] is True
        assert complete["can_book"] is True

    def test_upload_resubmits_rejected_profile(self, client, db, make_customer, monkeypatch):
        uploaded = []
        monkeypatch.setattr(storage, "upload_bytes", lambda key, content, content_type: uploaded.append(key) or key)
        customer = make_customer(
            verified=False,
            verification_status=VerificationStatus.REJECTED,
            verification_notes="Blurry scan",
        )

        response = client.post(
            "/profile/upload",
            data={"document_type": "identity"},
            files={"file": ("aadhaar card.pdf", b"%PDF-1.4 test", "application/pdf")},
            headers=customer_headers(customer),
        )

        assert response.status_code == 200
        assert response.json()["proof_of_identity"] == uploaded[0]
        assert uploaded[0].startswith(f"customers/{customer.id}/identity/")
        db.expire_all()
        refreshed = db.get(Customer, customer.id)
        assert refreshed.verification_status == VerificationStatus.PENDING
        assert refreshed.verification_notes is None

    def test_upload_rejects_unsupported_files(self, client, make_customer):
        customer = make_customer()

        wrong_type = client.post(
            "/profile/upload",
            data={"document_type": "identity"},
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=customer_headers(customer),
        )
        wrong_kind = client.post(
            "/profile/upload",
            data={"document_type": "passport"},
            files={"file": ("id.pdf", b"%PDF", "application/pdf")},
            headers=customer_headers(customer),
        )

        assert wrong_type.status_code == 400
        assert wrong_kind.status_code == 400

    def test_upload_reports_storage_outage(self, client, make_customer, monkeypatch):
        def broken_upload(key, content, content_type):
            raise storage.StorageError("Object storage is not configured")

        monkeypatch.setattr(storage, "upload_bytes", broken_upload)
        customer = make_customer()

        response = client.post(
            "/profile/upload",
            data={"document_type": "address"},
            files={"file": ("bill.png", b"\x89PNG", "image/png")},
            headers=customer_headers(customer),
        )

        assert response.status_code == 503
