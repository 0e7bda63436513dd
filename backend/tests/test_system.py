# Overview: Pytest coverage for health, CLI commands, configuration, startup and the transaction boundary.

import logging
from logging.handlers import RotatingFileHandler

import pytest

from shopkeep import server
from shopkeep.config import Settings
from shopkeep.errors import ConflictError
from shopkeep.extensions import db
from shopkeep.logging_config import configure_logging
from shopkeep.models import Customer, User
from shopkeep.services.concurrency import run_atomic


class TestHealth:

    def test_healthy(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["details"]["invoices"] == 0


class TestCli:

    @pytest.fixture
    def runner(self, app, db_session):
        return app.test_cli_runner()

    def test_create_user(self, runner):
        result = runner.invoke(args=[
            "users", "create",
            "--username", "owner",
            "--email", "owner@shop.local",
            "--password", "Password123!",
            "--role", "admin",
        ])
        assert result.exit_code == 0, result.output
        assert "PASS Created user: owner (admin" in result.output
        assert db.session.query(User).filter_by(username="owner").one().role == "admin"

    def test_create_user_weak_password(self, runner):
        result = runner.invoke(args=[
            "users", "create",
            "--username", "owner",
            "--email", "owner@shop.local",
            "--password", "short",
            "--role", "sales",
        ])
        assert result.exit_code != 0
        assert "Password must be at least 8 characters long" in result.output
        assert db.session.query(User).count() == 0

    def test_list_users(self, runner, manager_user):
        result = runner.invoke(args=["users", "list"])
        assert result.exit_code == 0
        assert "manager@shop.local" in result.output

    def test_check_db(self, runner, bicycle):
        result = runner.invoke(args=["system", "check-db"])
        assert result.exit_code == 0
        assert "PASS Database reachable" in result.output
        assert "inventory_items" in result.output


class TestRunAtomic:

    def test_integrity_error_becomes_conflict(self, db_session):
        def _op():
            db.session.add(Customer(customer_name=None, phone="1"))
            db.session.flush()

        with pytest.raises(ConflictError):
            run_atomic(_op, description="Creating customer")
        assert db.session.query(Customer).count() == 0

    def test_other_errors_roll_back_and_propagate(self, db_session):
        def _op():
            db.session.add(Customer(customer_name="Temp", phone="1"))
            db.session.flush()
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            run_atomic(_op, description="Creating customer")
        assert db.session.query(Customer).count() == 0

    def test_commits_on_success(self, db_session):
        def _op():
            customer = Customer(customer_name="Kept", phone="1")
            db.session.add(customer)
            return customer

        customer = run_atomic(_op, description="Creating customer")
        db.session.rollback()
        assert db.session.get(Customer, customer.id).customer_name == "Kept"


class TestSettings:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///other.db")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("SESSION_IDLE_MINUTES", "30")
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
        monkeypatch.setenv("AUTO_CREATE_SCHEMA", "yes")

        settings = Settings.from_env()
        assert settings.database_url == "sqlite:///other.db"
        assert settings.log_level == "DEBUG"
        assert settings.session_idle_timeout.total_seconds() == 1800
        assert settings.cors_origins == frozenset({"http://a.test", "http://b.test"})
        assert settings.auto_create_schema is True
        assert settings.flask_config()["SQLALCHEMY_DATABASE_URI"] == "sqlite:///other.db"

    def test_cors_headers(self, client):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        resp = client.get("/api/health", headers={"Origin": "http://evil.test"})
        assert "Access-Control-Allow-Origin" not in resp.headers

    def test_configure_logging_with_file(self, tmp_path, monkeypatch):
        captured = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))
        log_file = tmp_path / "logs" / "shopkeep.log"

        configure_logging(Settings(log_level="WARNING", log_file=str(log_file)))

        assert captured["level"] == "WARNING"
        assert captured["force"] is True
        assert [type(h) for h in captured["handlers"]] == [logging.StreamHandler, RotatingFileHandler]
        assert log_file.parent.is_dir()
        for handler in captured["handlers"][1:]:
            handler.close()


class TestServerStartup:

    @pytest.fixture(autouse=True)
    def _quiet_logging(self, monkeypatch):
        # basicConfig(force=True) would strip pytest's capture handler
        monkeypatch.setattr(server, "configure_logging", lambda settings: None)

    def test_unreachable_database_exits_with_error(self, tmp_path, monkeypatch, caplog):
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path}/missing/shop.db")

        with caplog.at_level(logging.ERROR, logger="shopkeep.server"):
            assert server.main() == 1
        assert "Cannot reach the database at startup" in caplog.text

    def test_unsupported_database_url_exits_with_error(self, monkeypatch, caplog):
        monkeypatch.setenv("DATABASE_URL", "nosuchdb://localhost/shop")

        with caplog.at_level(logging.ERROR, logger="shopkeep.server"):
            assert server.main() == 1
        assert "Cannot reach the database at startup" in caplog.text

    def test_invalid_environment_exits_with_error(self, monkeypatch, caplog):
        monkeypatch.setenv("PORT", "not-a-port")

        with caplog.at_level(logging.ERROR, logger="shopkeep.server"):
            assert server.main() == 1
        assert "Invalid configuration at startup" in caplog.text
