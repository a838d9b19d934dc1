"""Integration tests for the Flask before_request hook."""

import json

import pytest
from flask import Flask, jsonify

from alan_captcha.errors import ConfigurationError
from alan_captcha.middleware.core import CaptchaMiddleware
from alan_captcha.middleware.flask_hook import init_app, validation_had_been_processed

VALID_FIELD = json.dumps({"jwt": "signed.token", "solutions": [1, 2]})


def _build_app(middleware: CaptchaMiddleware) -> Flask:
    app = Flask(__name__)
    app.config["TESTING"] = True
    init_app(app, middleware)

    @app.route("/login", methods=["GET", "POST"])
    def login():
        return jsonify(ok=True, attempted=validation_had_been_processed())

    @app.route("/about")
    def about():
        return jsonify(ok=True, attempted=validation_had_been_processed())

    return app


@pytest.fixture
def client(fake_api):
    middleware = CaptchaMiddleware(api_key="private", include_paths=["/login"], api=fake_api)
    with _build_app(middleware).test_client() as client:
        yield client


class TestFlaskHook:
    def test_unprotected_route_bypasses(self, client, fake_api):
        resp = client.get("/about")
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True, "attempted": False}
        assert fake_api.challenge_calls == []

    def test_header_proof_passes(self, client, fake_api):
        resp = client.get(
            "/login", headers={"X-Alan-JWT": "signed.token", "X-Alan-Solution": "[1, 2]"}
        )
        assert resp.status_code == 200
        assert resp.get_json()["attempted"] is True
        assert fake_api.challenge_calls == [("private", "signed.token", [1, 2])]

    def test_form_field_passes(self, client, fake_api):
        resp = client.post("/login", data={"alan-solution": VALID_FIELD})
        assert resp.status_code == 200
        assert fake_api.widget_calls == [("private", VALID_FIELD)]

    def test_json_body_field_passes(self, client, fake_api):
        resp = client.post("/login", json={"alan-solution": VALID_FIELD})
        assert resp.status_code == 200
        assert fake_api.widget_calls == [("private", VALID_FIELD)]

    def test_missing_proof_is_forbidden(self, client):
        resp = client.post("/login", data={"username": "bob"})
        assert resp.status_code == 403
        assert resp.data == b""

    def test_rejected_solution_is_forbidden(self, client, fake_api):
        fake_api.outcome = False
        resp = client.post("/login", data={"alan-solution": VALID_FIELD})
        assert resp.status_code == 403

    def test_service_error_fails_open(self, client, fake_api, service_error):
        fake_api.outcome = service_error
        resp = client.get(
            "/login", headers={"X-Alan-JWT": "signed.token", "X-Alan-Solution": "[1]"}
        )
        assert resp.status_code == 200
        assert resp.get_json()["attempted"] is True

    def test_custom_rejection(self, fake_api):
        fake_api.outcome = False
        middleware = CaptchaMiddleware(
            api_key="private",
            include_paths=["/login"],
            api=fake_api,
            rejection_factory=lambda: (jsonify(error="captcha_failed"), 403),
        )
        with _build_app(middleware).test_client() as client:
            resp = client.post("/login", data={"alan-solution": VALID_FIELD})
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "captcha_failed"}

    def test_missing_api_key_surfaces(self, fake_api):
        app = _build_app(CaptchaMiddleware(include_paths=["/login"], api=fake_api))
        app.config["PROPAGATE_EXCEPTIONS"] = True
        with app.test_client() as client:
            with pytest.raises(ConfigurationError):
                client.get("/login")
