"""
Route tests through the Flask test client.
"""

import pytest

from app import create_app


# Fixtures

@pytest.fixture
def app():
    """App with the testing configuration (relay server 192.0.2.10)."""
    return create_app("config.TestingConfig")


@pytest.fixture
def client(app):
    return app.test_client()


class TestDownloadRoutes:
    """Test installer downloads."""

    def test_windows_script_download(self, client):
        response = client.get("/print-server/download/windows-script/HP%20LaserJet?port=8632")

        assert response.status_code == 200
        assert response.mimetype == "application/x-bat"
        assert 'filename="install-HP_LaserJet.bat"' in response.headers["Content-Disposition"]
        body = response.get_data(as_text=True)
        assert body.startswith("@echo off\r\n")
        assert "$TargetAddress = '192.0.2.10'" in body
        assert "$TargetPort = 8632" in body

    def test_linux_script_download(self, client):
        response = client.get("/print-server/download/linux-script/HP%20LaserJet?port=8632")

        assert response.status_code == 200
        assert response.mimetype == "application/x-sh"
        assert response.get_data(as_text=True).startswith("#!/usr/bin/env bash\n")

    def test_shared_usb_printer_goes_through_relay(self, client):
        response = client.get(
            "/print-server/download/windows-script/Canon"
            "?address=192.168.5.77&port=relay&location=Compartida-USB"
        )

        body = response.get_data(as_text=True)
        assert response.status_code == 200
        assert "192.168.5.77" not in body
        assert "$TargetPort = 8631" in body
        assert "$SharedUsbRelay = $true" in body

    def test_bad_port_is_a_client_error(self, client):
        response = client.get("/print-server/download/windows-script/HP?port=abc")

        assert response.status_code == 400
        assert response.get_json()["details"]["field"] == "port"

    def test_blank_name_is_a_client_error(self, client):
        response = client.get("/print-server/download/windows-script/%20%20")

        assert response.status_code == 400
        assert "name" in response.get_json()["error"]


class TestApiRoutes:
    """Test JSON endpoints."""

    def test_install_command(self, client):
        response = client.get("/print-server/api/install-command/HP%20LaserJet?port=8632")

        data = response.get_json()
        assert response.status_code == 200
        assert data["ippUri"] == "ipp://192.0.2.10:8632/printers/HP_LaserJet"
        assert data["port"] == "8632"
        assert data["windows"] == "install-HP_LaserJet.bat"
        assert data["linux"] == "sudo bash install-HP_LaserJet.sh"

    def test_request_host_fallback_strips_port(self, app, client):
        app.config["RELAY_SERVER_ADDRESS"] = ""

        response = client.get(
            "/print-server/api/install-command/HP?port=8632", base_url="http://printhub.local:5000"
        )

        assert response.get_json()["ippUri"] == "ipp://printhub.local:8632/printers/HP"

    def test_request_host_fallback_ipv6(self, app, client):
        """A bracketed IPv6 host keeps its full address."""
        app.config["RELAY_SERVER_ADDRESS"] = ""

        response = client.get(
            "/print-server/api/install-command/HP?port=8632", base_url="http://[::1]:5000"
        )

        assert response.status_code == 200
        assert response.get_json()["ippUri"] == "ipp://[::1]:8632/printers/HP"

    def test_install_plan_dry_run(self, client):
        response = client.get("/print-server/api/install-plan/HP%20LaserJet?os=linux&port=8632")

        data = response.get_json()
        assert response.status_code == 200
        assert [a["kind"] for a in data["attempts"]] == ["ipp", "raw"]
        assert data["dryRun"]["success"] is True
        assert data["dryRun"]["protocol"] == "ipp"

    def test_install_plan_unknown_os(self, client):
        response = client.get("/print-server/api/install-plan/HP?os=beos")

        assert response.status_code == 404

    def test_health(self, client):
        response = client.get("/health")

        data = response.get_json()
        assert response.status_code == 200
        assert data["checks"]["installer"] == "ok"
        assert data["checks"]["relay_server"] == "192.0.2.10"
