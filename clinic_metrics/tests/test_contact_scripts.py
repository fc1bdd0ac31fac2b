"""
Tests for debtor contact messages, WhatsApp links and the CSV export.
"""

import copy

import pytest

from clinic_metrics.models.enums import MessageType
from clinic_metrics.services.contact_scripts import (
    DEBTOR_EXPORT_HEADERS,
    build_contact_script,
    build_debtor_export,
    build_whatsapp_url,
    extract_first_name,
    generate_script,
    render_debtor_csv,
)


class TestExtractFirstName:

    @pytest.mark.parametrize(
        "full_name,expected",
        [
            ("PEREZ, Ana", "Ana"),
            ("  PEREZ ,  Ana Maria ", "Ana Maria"),
            ("Gomez", "Gomez"),
            ("Sofia Diaz", "Diaz"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_name_token(self, full_name, expected):
        assert extract_first_name(full_name) == expected


class TestGenerateScript:

    def test_premium_template(self, recupero_rows):
        client = dict(recupero_rows[0], tipo_mensaje="premium")
        message = generate_script(client, clinic_name="Clinica Test")

        assert message == (
            "Hola Ana, te contacto de Clinica Test. \n\n"
            "Como cliente Premium con más de $1200K en tratamientos, queremos asegurarnos "
            "de que tu experiencia siga siendo excepcional.\n\n"
            "Veo que tenés un saldo pendiente de $600K desde hace 95 días. "
            "¿Te gustaría que coordinemos un plan de pagos personalizado para regularizar tu cuenta?\n\n"
            "También podemos agendar tu próxima consulta para dar continuidad a tus tratamientos.\n\n"
            "¿Cuándo te vendría bien que hablemos?"
        )

    def test_high_value_template(self, recupero_rows):
        client = dict(recupero_rows[1], tipo_mensaje="alto_valor")
        message = generate_script(client)

        assert message.startswith("Hola Luis, soy del equipo de Centro Ghigi Figueroa.\n\n")
        assert "saldo pendiente de $250K desde hace 45 días." in message
        assert "Como cliente valorado con $400K en tratamientos" in message
        assert message.endswith("Quedamos atentos a tu respuesta.")

    def test_unknown_type_uses_standard_template(self):
        message = generate_script({"nombre_completo": "Sofia", "saldo_total": 1_499, "tipo_mensaje": "vip"})

        assert message == (
            "Hola Sofia, te contacto de Centro Ghigi Figueroa.\n\n"
            "Te escribimos para recordarte que tenés un saldo pendiente de $1K. "
            "Queremos ayudarte a regularizar tu cuenta.\n\n"
            "¿Podemos coordinar un pago o establecer un plan de cuotas?\n\n"
            "Gracias por tu atención."
        )

    def test_deterministic_and_input_untouched(self, recupero_rows):
        client = dict(recupero_rows[0], tipo_mensaje="premium")
        snapshot = copy.deepcopy(client)

        assert generate_script(client) == generate_script(client)
        assert client == snapshot


class TestWhatsappUrl:

    def test_digits_and_country_code(self):
        url = build_whatsapp_url("(011) 4444-5555", "Hola Ana")
        assert url == "https://wa.me/5401144445555?text=Hola%20Ana"

    def test_country_code_always_prefixed(self):
        url = build_whatsapp_url("+54 9 11 5555-1234", "x")
        assert url.startswith("https://wa.me/545491155551234?text=")

    @pytest.mark.parametrize("phone", [None, "", "sin telefono"])
    def test_no_digits_no_link(self, phone):
        assert build_whatsapp_url(phone, "Hola") is None

    def test_contact_script_bundle(self, recupero_rows):
        client = dict(recupero_rows[2], tipo_mensaje="estandar")
        script = build_contact_script(client)

        assert script.id_cliente == "c-003"
        assert script.message_type == MessageType.ESTANDAR
        assert script.whatsapp_url is None
        assert "Diaz" in script.message


class TestDebtorExport:

    @pytest.fixture
    def deudores(self):
        return [
            {
                "nombre_completo": "PEREZ, Ana",
                "telefono": "1155551234",
                "email": "ana@example.com",
                "deuda_total": 700_000,
                "ltv": 1_200_000,
                "dias_desde_ultimo_pago": 75,
            },
            {
                "nombre_completo": "GOMEZ, Luis",
                "deuda_total": 100_000,
                "ltv": 150_000,
                "dias_desde_ultimo_pago": None,
                "segmento_riesgo": "Medio",
                "prioridad_contacto": "Media",
            },
        ]

    def test_rows(self, deudores):
        headers, data = build_debtor_export(deudores)

        assert headers == DEBTOR_EXPORT_HEADERS
        assert data[0] == [
            "PEREZ, Ana", "1155551234", "ana@example.com", 700_000.0, 1_200_000.0, "75", "Alto", "Alta",
        ]
        assert data[1][:3] == ["GOMEZ, Luis", "", ""]
        assert data[1][5:] == ["N/A", "Medio", "Media"]

    def test_missing_days_without_labels(self):
        _, data = build_debtor_export([{"deuda_total": 50_000, "dias_desde_ultimo_pago": None}])
        assert data[0][5:] == ["N/A", "N/A", "Baja"]

    def test_csv(self, deudores):
        lines = render_debtor_csv(deudores).splitlines()

        assert lines[0] == "Nombre,Teléfono,Email,Deuda,LTV,Días sin pago,Riesgo,Prioridad"
        assert len(lines) == 3
        assert lines[1].startswith('"PEREZ, Ana",1155551234')
