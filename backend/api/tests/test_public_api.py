from django.urls import reverse


def test_status_endpoint_reports_configuration(client):
    response = client.get(reverse("api:status"))

    assert response.status_code == 200
    payload = response.json()
    assert payload["enabled"] is True
    assert payload["database_id"] == "***configured***"
    assert payload["environment"] == "testing"
    assert payload["queue"] is None
    assert payload["rate_limit"]["max_per_window"] == 10


def test_status_endpoint_never_leaks_credentials(client):
    body = client.get(reverse("api:status")).content.decode()

    assert "secret_test" not in body
    assert "db-test" not in body


def test_status_endpoint_returns_503_on_bad_settings(client, settings):
    settings.FAULTLINE_RATE_LIMIT_MAX = -1

    response = client.get(reverse("api:status"))

    assert response.status_code == 503
    assert response.json()["configured"] is False


def test_status_endpoint_rejects_writes(client):
    assert client.post(reverse("api:status")).status_code == 405
