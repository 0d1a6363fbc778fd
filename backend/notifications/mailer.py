"""
Mailgun delivery of generated documents.

Optional: when MAILGUN_DOMAIN / MAILGUN_API_KEY are not configured, sending is
skipped. Delivery failures are logged and reported as False, never raised.

API: POST {MAILGUN_BASE_URL}/v3/<domain>/messages (multipart form)
Auth: HTTP basic, user "api", password = API key
"""

import logging

import httpx

from config import settings

logger = logging.getLogger(__name__)

_SUBJECTS = {
    "nnn_agreement": "NNN Agreement",
    "company_checkup": "Company Checkup Request",
    "trademark_application": "Trademark Application",
}


def _sender() -> str:
    address = settings.email_from_address or f"mailgun@{settings.mailgun_domain}"
    return f"{settings.email_from_name} <{address}>"


async def _send(to: str, subject: str, text: str, filename: str, data: bytes, content_type: str) -> None:
    url = f"{settings.mailgun_base_url.rstrip('/')}/v3/{settings.mailgun_domain}/messages"
    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(
            url,
            auth=("api", settings.mailgun_api_key or ""),
            data={"from": _sender(), "to": to, "subject": subject, "text": text},
            files={"attachment": (filename, data, content_type)},
        )
        response.raise_for_status()


async def send_document(
    recipient: str,
    document_type: str,
    filename: str,
    data: bytes,
    content_type: str = "application/pdf",
) -> bool:
    """E-mail a document to its owner, with a copy to INTERNAL_EMAIL when set.

    Returns:
        True if the customer e-mail was accepted by Mailgun.
    """
    if not settings.mail_enabled:
        logger.debug("Mail delivery not configured, skipping e-mail for %s", filename)
        return False

    label = _SUBJECTS.get(document_type, "Document")
    try:
        await _send(
            recipient,
            f"Your {label} is Ready",
            "Thank you for using our service. Your document is attached to this email.",
            filename, data, content_type,
        )
    except httpx.HTTPError as e:
        logger.error("Mailgun delivery to %s failed: %s", recipient, e)
        return False
    logger.info("Sent %s to %s", filename, recipient)

    if settings.internal_email:
        try:
            await _send(
                settings.internal_email,
                f"New {label} Generated",
                f"A new document was generated for {recipient}.",
                filename, data, content_type,
            )
        except httpx.HTTPError as e:
            logger.error("Internal copy of %s failed: %s", filename, e)
    return True
