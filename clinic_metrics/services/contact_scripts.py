"""
Debtor contact messages, WhatsApp links and the debtor export.

generate_script() picks one of three fixed Spanish templates by message type
(premium, alto_valor, anything else -> estandar) and fills in:

- nombre: the name token. nombre_completo is split on "," when it contains
  one, otherwise on " ". The second part is used when there are two or more
  parts ("PEREZ, Ana" -> "Ana"), otherwise the first. Surrounding
  whitespace is stripped.
- deuda / ltv: pesos in thousands, rounded half-up, no decimals.
- dias: whole days since the last visit.

The output is a pure function of its inputs; an empty name yields an empty
slot rather than an error.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import quote

import pandas as pd

from clinic_metrics.models.enums import MessageType, RiskThresholdVariant
from clinic_metrics.models.schemas import ContactScript
from clinic_metrics.services.formatting import NA_PLACEHOLDER, format_days
from clinic_metrics.services.metrics import (
    coerce_int_or_zero,
    coerce_numeric_or_zero,
    field,
    round_half_up,
)
from clinic_metrics.services.risk import classify_priority, classify_risk_segment

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_CLINIC_NAME = "Centro Ghigi Figueroa"

WHATSAPP_BASE_URL = "https://wa.me/"
WHATSAPP_COUNTRY_CODE = "54"

SCRIPT_TEMPLATES = {
    MessageType.PREMIUM: (
        "Hola {nombre}, te contacto de {clinica}. \n\n"
        "Como cliente Premium con más de ${ltv}K en tratamientos, queremos asegurarnos "
        "de que tu experiencia siga siendo excepcional.\n\n"
        "Veo que tenés un saldo pendiente de ${deuda}K desde hace {dias} días. "
        "¿Te gustaría que coordinemos un plan de pagos personalizado para regularizar tu cuenta?\n\n"
        "También podemos agendar tu próxima consulta para dar continuidad a tus tratamientos.\n\n"
        "¿Cuándo te vendría bien que hablemos?"
    ),
    MessageType.ALTO_VALOR: (
        "Hola {nombre}, soy del equipo de {clinica}.\n\n"
        "Te escribo porque tenés un saldo pendiente de ${deuda}K desde hace {dias} días. "
        "Como cliente valorado con ${ltv}K en tratamientos, queremos ofrecerte facilidades de pago.\n\n"
        "¿Te gustaría que coordinemos opciones de financiación o un plan de cuotas?\n\n"
        "Quedamos atentos a tu respuesta."
    ),
    MessageType.ESTANDAR: (
        "Hola {nombre}, te contacto de {clinica}.\n\n"
        "Te escribimos para recordarte que tenés un saldo pendiente de ${deuda}K. "
        "Queremos ayudarte a regularizar tu cuenta.\n\n"
        "¿Podemos coordinar un pago o establecer un plan de cuotas?\n\n"
        "Gracias por tu atención."
    ),
}

DEBTOR_EXPORT_HEADERS = [
    "Nombre",
    "Teléfono",
    "Email",
    "Deuda",
    "LTV",
    "Días sin pago",
    "Riesgo",
    "Prioridad",
]


# =============================================================================
# SCRIPT GENERATION
# =============================================================================

def extract_first_name(full_name: Any) -> str:
    """
    Name token used to greet the client.

    Example:
        >>> extract_first_name("PEREZ, Ana")
        'Ana'
        >>> extract_first_name("Gomez")
        'Gomez'
    """
    if full_name is None:
        return ""
    text = str(full_name)
    parts = text.split(",") if "," in text else text.split(" ")
    token = parts[1] if len(parts) >= 2 else parts[0]
    return token.strip()


def _thousands(value: Any) -> str:
    return f"{round_half_up(coerce_numeric_or_zero(value) / 1000):.0f}"


def _message_type(value: Any) -> MessageType:
    try:
        return MessageType(value)
    except ValueError:
        return MessageType.ESTANDAR


def generate_script(
    client: Mapping[str, Any],
    clinic_name: str = DEFAULT_CLINIC_NAME,
) -> str:
    """
    Contact message for one debtor.

    Args:
        client: Row with nombre_completo, saldo_total, ltv,
            dias_desde_ultima_visita and tipo_mensaje.
        clinic_name: Clinic name used in the greeting.

    Returns:
        The filled template for the client's message type.
    """
    template = SCRIPT_TEMPLATES[_message_type(client.get("tipo_mensaje"))]
    return template.format(
        nombre=extract_first_name(client.get("nombre_completo")),
        clinica=clinic_name,
        deuda=_thousands(client.get("saldo_total")),
        ltv=_thousands(client.get("ltv")),
        dias=coerce_int_or_zero(client.get("dias_desde_ultima_visita")),
    )


def build_whatsapp_url(phone: Any, message: str) -> Optional[str]:
    """
    wa.me deep link with the message pre-filled.

    Only the digits of the phone number are kept and the Argentine country
    code is prepended. Returns None when the phone has no digits.

    Example:
        >>> build_whatsapp_url("(011) 4444-5555", "Hola")
        'https://wa.me/5401144445555?text=Hola'
    """
    digits = "".join(ch for ch in str(phone or "") if ch.isdigit())
    if not digits:
        return None
    encoded = quote(message, safe="!~*'()")
    return f"{WHATSAPP_BASE_URL}{WHATSAPP_COUNTRY_CODE}{digits}?text={encoded}"


def build_contact_script(
    client: Mapping[str, Any],
    clinic_name: str = DEFAULT_CLINIC_NAME,
) -> ContactScript:
    """Message plus WhatsApp link for one debtor row."""
    message = generate_script(client, clinic_name)
    client_id = client.get("id_cliente")
    return ContactScript(
        id_cliente=str(client_id) if client_id is not None else None,
        message_type=_message_type(client.get("tipo_mensaje")),
        message=message,
        whatsapp_url=build_whatsapp_url(client.get("telefono"), message),
    )


# =============================================================================
# DEBTOR EXPORT
# =============================================================================

def build_debtor_export(rows: Sequence[Mapping[str, Any]]) -> Tuple[List[str], List[List[Any]]]:
    """
    Header and data rows for exporting selected finanzas_deudores rows.

    Missing days since last payment are exported as "N/A". Missing risk and
    priority labels are classified from days and debt.
    """
    data = []
    for row in rows:
        days = row.get("dias_desde_ultimo_pago")
        risk = row.get("segmento_riesgo") or (
            classify_risk_segment(days, RiskThresholdVariant.DEBTOR_SCATTER).value
            if days is not None else NA_PLACEHOLDER
        )
        priority = row.get("prioridad_contacto") or classify_priority(days, row.get("deuda_total")).value
        data.append([
            row.get("nombre_completo") or "",
            row.get("telefono") or "",
            row.get("email") or "",
            field(row, "deuda_total"),
            field(row, "ltv"),
            format_days(days),
            risk,
            priority,
        ])
    return DEBTOR_EXPORT_HEADERS, data


def render_debtor_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """Debtor export as CSV text."""
    headers, data = build_debtor_export(rows)
    frame = pd.DataFrame(data, columns=headers)
    logger.info(f"Rendering debtor export with {len(frame)} rows")
    return frame.to_csv(index=False)
