"""
HTTP endpoint tests with mocked dashboard views.

The asyncpg pool, settings and view cache dependencies are overridden, and
mock_conn.fetch answers each ``SELECT ... FROM dashboard.<view>`` with the
sample rows from conftest.py.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from clinic_metrics.core.cache import ViewCache
from clinic_metrics.core.dependencies import (
    get_db_pool_dependency,
    get_settings_dependency,
    get_view_cache_dependency,
)
from clinic_metrics.main import app


@pytest.fixture
def view_rows(
    recupero_rows,
    finanzas_diario_rows,
    operaciones_diario_rows,
    capacidad_rows,
    embudo_rows,
    canales_rows,
):
    return {
        "finanzas_recupero_master": recupero_rows,
        "finanzas_diario": finanzas_diario_rows,
        "finanzas_deudores": [
            {
                "nombre_completo": "PEREZ, Ana",
                "telefono": "1155551234",
                "deuda_total": 600_000,
                "ltv": 1_200_000,
                "dias_desde_ultimo_pago": 95,
            },
        ],
        "operaciones_diario": operaciones_diario_rows,
        "operaciones_capacidad": capacidad_rows,
        "operaciones_heatmap": [],
        "comercial_embudo": embudo_rows,
        "comercial_canales": canales_rows,
    }


@pytest.fixture
def client(mock_db_pool, mock_conn, test_settings, view_rows):
    """TestClient with pool, settings and a fresh ViewCache injected."""

    def fake_fetch(query, *args):
        if " AS value " in query:
            return [{"value": "Centro"}, {"value": "Norte"}]
        view = query.split("FROM dashboard.")[1].split()[0]
        return view_rows.get(view, [])

    mock_conn.fetch = AsyncMock(side_effect=fake_fetch)
    cache = ViewCache()

    app.dependency_overrides[get_db_pool_dependency] = lambda: mock_db_pool
    app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    app.dependency_overrides[get_view_cache_dependency] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.api
class TestServiceEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "Clinic Metrics API"
        assert body["docs"] == "/docs"


@pytest.mark.api
class TestFinanzasEndpoints:

    def test_kpis(self, client):
        response = client.get("/finanzas/kpis")

        assert response.status_code == 200
        body = response.json()
        assert body["revenue_total"] == 4_000_000
        assert body["collection_rate"] == pytest.approx(83.75)
        assert body["collection_rate_tag"] == "warning"

    def test_inverted_date_range_is_rejected(self, client):
        response = client.get("/finanzas/kpis", params={"start_date": "2025-03-01", "end_date": "2025-02-01"})

        assert response.status_code == 400
        assert "is after" in response.json()["detail"]

    def test_database_error_is_500(self, client, mock_conn):
        mock_conn.fetch.side_effect = OSError("connection refused")

        response = client.get("/finanzas/kpis")

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Failed computing finance KPIs")

    def test_recovery_list_by_priority(self, client):
        response = client.get("/finanzas/recupero", params={"prioridad": "Crítica"})

        assert response.status_code == 200
        body = response.json()
        assert [c["id_cliente"] for c in body] == ["c-001"]
        assert body[0]["classification"]["message_type"] == "premium"

    def test_aging_from_clients(self, client):
        body = client.get("/finanzas/aging", params={"desde_clientes": True}).json()

        assert len(body) == 5
        assert sum(bucket["client_count"] for bucket in body) == 3

    def test_export_csv(self, client):
        response = client.get("/finanzas/recupero/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="deudores.csv"' in response.headers["content-disposition"]
        assert response.text.splitlines()[0].startswith("Nombre,Teléfono")

    def test_contact_script(self, client, mock_conn, recupero_rows):
        mock_conn.fetchrow.return_value = recupero_rows[0]

        response = client.get("/finanzas/recupero/c-001/script")

        assert response.status_code == 200
        body = response.json()
        assert body["message_type"] == "premium"
        assert body["message"].startswith("Hola Ana")
        assert body["whatsapp_url"].startswith("https://wa.me/54")

    def test_contact_script_unknown_client(self, client, mock_conn):
        mock_conn.fetchrow.return_value = None

        response = client.get("/finanzas/recupero/missing/script")

        assert response.status_code == 404


@pytest.mark.api
class TestOperacionesEndpoints:

    def test_kpis(self, client):
        body = client.get("/operaciones/kpis", params={"as_of": "2025-03-20"}).json()

        assert body["month"] == "2025-03"
        assert body["scheduled"]["value"] == 100
        assert body["attendance_rate"]["tag"] == "good"

    def test_heatmap_grid(self, client):
        body = client.get("/operaciones/heatmap", params={"grid": True}).json()

        assert len(body) == 91
        assert all(cell["tag"] == "neutral" for cell in body)

    def test_capacity_month_pattern(self, client):
        assert client.get("/operaciones/capacidad", params={"mes": "marzo"}).status_code == 422

        body = client.get("/operaciones/capacidad", params={"mes": "2025-03"}).json()
        assert [row["profesional"] for row in body] == ["Dra. Lopez", "Dr. Ruiz"]


@pytest.mark.api
class TestComercialEndpoints:

    def test_funnel(self, client):
        body = client.get("/comercial/embudo").json()

        assert [stage["name"] for stage in body["stages"]] == ["Lead", "Consulta", "Tratamiento", "Recurrente"]
        assert len(body["losses"]) == 3

    def test_channels(self, client):
        body = client.get("/comercial/canales").json()
        assert [channel["origen"] for channel in body] == ["Google", "Instagram"]


@pytest.mark.api
class TestFiltrosAndAdminEndpoints:

    def test_branch_options(self, client):
        assert client.get("/filtros/sucursales").json() == ["Centro", "Norte"]

    def test_refresh(self, client, mock_conn):
        response = client.post("/admin/refresh")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "5/5 vistas actualizadas"
        assert mock_conn.execute.await_count == 5

    def test_invalidate_unknown_view(self, client):
        response = client.post("/admin/cache/invalidate", params={"view": "pg_shadow"})
        assert response.status_code == 400

    def test_invalidate_after_read(self, client):
        client.get("/finanzas/kpis")
        body = client.post("/admin/cache/invalidate", params={"view": "finanzas_diario"}).json()

        assert body == {"view": "finanzas_diario", "entries_removed": 1}
