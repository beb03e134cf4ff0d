import pytest
from conftest import auth
from sqlalchemy.exc import IntegrityError

from app.domain.users.repository import UserRepository
from app.domain.users.service import UserService
from app.models import User
from app.services.line_identity import LineIdentity


class TestLogin:
    def test_new_user_without_phone_gets_registration_signal(self, client, identities):
        identities.register("new-token", "U-new", display_name="Amy", picture_url="https://pic")

        response = client.post("/auth/login", headers=auth("new-token"))
        assert response.status_code == 400
        assert response.json() == {
            "error": "Please provide a mobile phone number",
            "isNewUser": True,
            "lineProfile": {"lineId": "U-new", "displayName": "Amy", "pictureUrl": "https://pic"},
        }

    def test_registers_then_returns_same_user(self, client, identities, db):
        identities.register("new-token", "U-new", display_name="Amy")

        response = client.post(
            "/auth/login",
            json={"phone": "0912345678", "license": "abc1234"},
            headers=auth("new-token"),
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["lineId"] == "U-new"
        assert user["name"] == "Amy"
        assert user["license"] == "ABC-1234"
        assert user["role"] == "CUSTOMER"

        again = client.post("/auth/login", headers=auth("new-token"))
        assert again.status_code == 200
        assert again.json()["user"]["id"] == user["id"]
        assert db.query(User).filter(User.line_id == "U-new").count() == 1

    def test_invalid_phone(self, client, identities):
        identities.register("new-token", "U-new")
        response = client.post("/auth/login", json={"phone": "12345"}, headers=auth("new-token"))
        assert response.status_code == 400

    def test_invalid_token(self, client):
        response = client.post("/auth/login", headers=auth("bogus"))
        assert response.status_code == 401
        assert response.json() == {"error": "Token expired or invalid"}

    def test_missing_token(self, client):
        response = client.post("/auth/login")
        assert response.status_code == 401


class TestConcurrentFirstLogin:
    identity = LineIdentity(subject_id="U-race", display_name="Amy")

    def test_losing_insert_returns_winning_row(self, db, session_factory):
        winner = {}

        def create_after_rival(session, **user_data):
            rival = session_factory()
            try:
                row = User(line_id="U-race", name="Amy", phone="0911111111", role="CUSTOMER")
                rival.add(row)
                rival.commit()
                winner["id"] = row.id
            finally:
                rival.close()
            return UserRepository.create_user(session, **user_data)

        service = UserService(db)
        service.repo.create_user = create_after_rival

        user = service.login_or_register(self.identity, phone="0912345678")

        assert user.id == winner["id"]
        assert user.phone == "0911111111"
        assert db.query(User).filter(User.line_id == "U-race").count() == 1

    def test_integrity_error_without_existing_row_propagates(self, db):
        def failing_create(session, **user_data):
            raise IntegrityError("INSERT INTO users", {}, Exception("constraint failed"))

        service = UserService(db)
        service.repo.create_user = failing_create

        with pytest.raises(IntegrityError):
            service.login_or_register(self.identity, phone="0912345678")


class TestMe:
    def test_returns_current_user(self, client, customer):
        response = client.get("/auth/me", headers=auth("customer-token"))
        assert response.status_code == 200
        assert response.json()["user"]["id"] == customer.id

    def test_verified_but_unregistered(self, client, identities):
        identities.register("stranger-token", "U-stranger")
        response = client.get("/auth/me", headers=auth("stranger-token"))
        assert response.status_code == 401
        assert response.json() == {"error": "User not registered, please log in first"}


class TestUserDirectory:
    def test_customer_reads_only_self(self, client, customer, other_customer):
        assert client.get(f"/user/{customer.id}", headers=auth("customer-token")).status_code == 200
        response = client.get(f"/user/{other_customer.id}", headers=auth("customer-token"))
        assert response.status_code == 403

    def test_admin_lookups(self, client, admin, customer):
        assert client.get(f"/user/{customer.id}", headers=auth("admin-token")).status_code == 200
        response = client.get("/user/line/U-customer", headers=auth("admin-token"))
        assert response.status_code == 200
        assert response.json()["id"] == customer.id
        assert client.get("/user/line/U-missing", headers=auth("admin-token")).status_code == 404
        assert client.get("/user/line/U-customer", headers=auth("customer-token")).status_code == 403

    def test_customer_updates_own_profile(self, client, customer):
        response = client.put(
            f"/user/{customer.id}",
            json={"phone": "0922333444", "license": "1234aa"},
            headers=auth("customer-token"),
        )
        assert response.status_code == 200
        assert response.json()["phone"] == "0922333444"
        assert response.json()["license"] == "1234-AA"

    def test_customer_cannot_change_role_or_others(self, client, customer, other_customer):
        response = client.put(
            f"/user/{customer.id}", json={"role": "ADMIN"}, headers=auth("customer-token")
        )
        assert response.status_code == 403
        response = client.put(
            f"/user/{other_customer.id}", json={"name": "x"}, headers=auth("customer-token")
        )
        assert response.status_code == 403

    def test_update_validation(self, client, customer, other_customer, admin):
        assert client.put(
            f"/user/{customer.id}", json={}, headers=auth("customer-token")
        ).status_code == 400
        assert client.put(
            f"/user/{customer.id}", json={"license": "123456"}, headers=auth("customer-token")
        ).status_code == 400
        assert client.put(
            f"/user/{customer.id}", json={"lineId": "U-other"}, headers=auth("admin-token")
        ).status_code == 400

    def test_admin_creates_and_deletes(self, client, admin):
        response = client.post(
            "/user",
            json={"lineId": "U-walkin", "name": "Walk-in", "phone": "0933444555"},
            headers=auth("admin-token"),
        )
        assert response.status_code == 201
        user_id = response.json()["id"]

        duplicate = client.post(
            "/user",
            json={"lineId": "U-walkin", "name": "Again", "phone": "0933444555"},
            headers=auth("admin-token"),
        )
        assert duplicate.status_code == 400

        assert client.delete(f"/user/{user_id}", headers=auth("admin-token")).status_code == 200
        assert client.get(f"/user/{user_id}", headers=auth("admin-token")).status_code == 404

    def test_create_requires_admin(self, client, customer):
        response = client.post(
            "/user",
            json={"lineId": "U-x", "name": "X", "phone": "0933444555"},
            headers=auth("customer-token"),
        )
        assert response.status_code == 403
