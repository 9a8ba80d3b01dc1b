import sqlite3

from fastapi.testclient import TestClient

from gatekeep.errors import StorageError

SIGNUP = {"email": "A@B.com", "password": "pw12345", "confirmPassword": "pw12345"}


def _signup(client, **overrides):
    return client.post("/signup", data={**SIGNUP, **overrides}, follow_redirects=False)


def test_home_anonymous(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "You are not signed in." in r.text


def test_signup_creates_session_and_redirects(client, account_repo):
    r = _signup(client)
    assert r.status_code == 302
    assert r.headers["location"] == "/dashboard"
    cookie = r.headers["set-cookie"]
    assert "HttpOnly" in cookie
    assert "Max-Age=604800" in cookie
    assert account_repo.find_by_email("a@b.com") is not None

    r = client.get("/dashboard")
    assert r.status_code == 200
    assert "a@b.com" in r.text
    assert "Welcome!" in r.text

    # The flash was consumed by the previous request.
    r = client.get("/dashboard")
    assert "Welcome!" not in r.text


def test_signup_duplicate_is_400(client, app):
    assert _signup(client).status_code == 302
    other = TestClient(app)
    r = _signup(other, email="a@b.com", password="x", confirmPassword="x")
    assert r.status_code == 400
    assert "Email is already registered." in r.text
    assert 'value="a@b.com"' in r.text


def test_signup_validation_errors(client):
    r = _signup(client, confirmPassword="different")
    assert r.status_code == 400
    assert "Passwords do not match." in r.text

    r = client.post("/signup", data={"email": "a@b.com"}, follow_redirects=False)
    assert r.status_code == 400
    assert "All fields are required." in r.text


def test_signin_success(app):
    _signup(TestClient(app))
    client = TestClient(app)
    r = client.post("/signin", data={"email": " a@B.com", "password": "pw12345"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/dashboard"
    r = client.get("/dashboard")
    assert r.status_code == 200
    assert "Signed in successfully." in r.text


def test_signin_wrong_password_and_unknown_email(app):
    _signup(TestClient(app))
    client = TestClient(app)

    wrong = client.post("/signin", data={"email": "a@b.com", "password": "nope"}, follow_redirects=False)
    assert wrong.status_code == 400
    assert "Invalid email or password." in wrong.text
    assert "set-cookie" not in wrong.headers

    unknown = client.post("/signin", data={"email": "x@y.com", "password": "nope"}, follow_redirects=False)
    assert unknown.status_code == 400
    assert "Invalid email or password." in unknown.text

    assert client.get("/dashboard", follow_redirects=False).status_code == 302


def test_signin_missing_fields(client):
    r = client.post("/signin", data={"email": "a@b.com"}, follow_redirects=False)
    assert r.status_code == 400
    assert "Email and password are required." in r.text


def test_dashboard_requires_sign_in(client):
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/signin"

    r = client.get("/signin")
    assert r.status_code == 200
    assert "Please sign in first." in r.text

    r = client.get("/signin")
    assert "Please sign in first." not in r.text


def test_logout_destroys_session(client):
    _signup(client)
    assert client.get("/dashboard", follow_redirects=False).status_code == 200

    r = client.get("/logout", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/"
    assert client.get("/dashboard", follow_redirects=False).status_code == 302


def test_stolen_cookie_is_useless_after_logout(app):
    client = TestClient(app)
    r = _signup(client)
    token = client.cookies.get("gatekeep_session")
    client.get("/logout", follow_redirects=False)

    replay = TestClient(app)
    replay.cookies.set("gatekeep_session", token)
    assert replay.get("/dashboard", follow_redirects=False).status_code == 302


def test_tampered_cookie_is_anonymous(app):
    client = TestClient(app)
    client.cookies.set("gatekeep_session", "forged.value.here")
    assert "You are not signed in." in client.get("/").text
    assert client.get("/dashboard", follow_redirects=False).status_code == 302


def test_storage_fault_is_generic_500(client, app, monkeypatch):
    def boom(email):
        raise StorageError() from sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(app.state.account_service.accounts, "find_by_email", boom)
    r = _signup(client)
    assert r.status_code == 500
    assert "Something went wrong. Please try again." in r.text
    assert "disk I/O" not in r.text

    r = client.post("/signin", data={"email": "a@b.com", "password": "pw12345"}, follow_redirects=False)
    assert r.status_code == 500
    assert "set-cookie" not in r.headers


def test_unknown_path_is_404(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.text == "Not Found"


def test_unexpected_error_is_generic_500_and_server_keeps_serving(app, monkeypatch):
    async def explode(email, password, confirm_password):
        raise RuntimeError("internal detail xyz")

    monkeypatch.setattr(app.state.account_service, "register", explode)
    client = TestClient(app, raise_server_exceptions=False)
    r = _signup(client)
    assert r.status_code == 500
    assert r.text == "Something went wrong. Please try again."
    assert "xyz" not in r.text

    assert client.get("/").status_code == 200


def test_session_lookup_fault_is_generic_500(client, app, monkeypatch):
    async def broken_load(session_id):
        raise StorageError() from sqlite3.OperationalError("database disk image is malformed")

    monkeypatch.setattr(app.state.session_manager, "load", broken_load)
    r = client.get("/")
    assert r.status_code == 500
    assert r.text == "Something went wrong. Please try again."
    assert "malformed" not in r.text


def test_session_fault_after_signup_keeps_account(client, app, account_repo, monkeypatch):
    async def broken_create(account_id):
        raise StorageError()

    monkeypatch.setattr(app.state.session_manager, "create", broken_create)
    r = _signup(client)
    assert r.status_code == 500
    assert "set-cookie" not in r.headers
    assert account_repo.find_by_email("a@b.com") is not None

    monkeypatch.undo()
    r = _signup(client)
    assert r.status_code == 400
    assert "Email is already registered." in r.text
