"""
Advisor email rendering and dispatch.

Templates:
    advisor_invitation  first contact, with the response link
    advisor_reminder    follow-up for sent/viewed invitations

Dispatchers share one contract, `send(to_address, template_id, params) -> bool`:
    SendGridEmailDispatcher  SendGrid v3 mail/send over httpx (202 = accepted)
    LoggingEmailDispatcher   logs the rendered email; used when no API key is set
"""

import html
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from app.config import settings
from app.features.advisor_feedback.domain.models import AdvisorRelationship
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"

INVITATION_TEMPLATE = "advisor_invitation"
REMINDER_TEMPLATE = "advisor_reminder"


class EmailTemplateError(Exception):
    """Unknown template id or missing template parameter."""


@dataclass(frozen=True, slots=True)
class RelationshipCopy:
    subject: str  # formatted with user_name
    greeting: str
    context: str


RELATIONSHIP_COPY: dict[AdvisorRelationship, RelationshipCopy] = {
    AdvisorRelationship.MANAGER: RelationshipCopy(
        "Career insight request from {user_name}",
        "Hi",
        "As my manager, you've had great insight into my work style, strengths, and professional development.",
    ),
    AdvisorRelationship.COLLEAGUE: RelationshipCopy(
        "{user_name} has requested your professional perspective",
        "Hi",
        "As a colleague, you've worked alongside me and seen my contributions firsthand.",
    ),
    AdvisorRelationship.MENTOR: RelationshipCopy(
        "Career guidance request from {user_name}",
        "Dear",
        "You've been such a valuable mentor to me, and your guidance has been instrumental "
        "in my professional growth.",
    ),
    AdvisorRelationship.FRIEND: RelationshipCopy(
        "{user_name} would value your career insights",
        "Hi",
        "You know me well both personally and professionally, which gives you a unique "
        "perspective on my capabilities.",
    ),
    AdvisorRelationship.FAMILY: RelationshipCopy(
        "{user_name} is exploring career options - your input needed",
        "Hi",
        "As someone who knows me so well, you have insights into my natural talents and what motivates me.",
    ),
    AdvisorRelationship.CLIENT: RelationshipCopy(
        "Professional feedback request from {user_name}",
        "Dear",
        "Working with you as a client has given you visibility into my professional capabilities and approach.",
    ),
    AdvisorRelationship.SPONSOR: RelationshipCopy(
        "Career development input requested by {user_name}",
        "Dear",
        "Your sponsorship and support of my career has given you valuable insights into my "
        "potential and areas for growth.",
    ),
    AdvisorRelationship.PEER: RelationshipCopy(
        "Peer feedback request from {user_name}",
        "Hi",
        "As a peer in our field, you understand the industry context and have observed my "
        "professional contributions.",
    ),
    AdvisorRelationship.OTHER: RelationshipCopy(
        "Career insight request from {user_name}",
        "Hi",
        "Your perspective on my professional capabilities would be incredibly valuable.",
    ),
}


@dataclass(frozen=True, slots=True)
class EmailContent:
    subject: str
    text: str
    html: str


def _signature(params: dict[str, Any]) -> str:
    lines = [params["user_name"] + (f", {params['user_title']}" if params.get("user_title") else "")]
    if params.get("company_name"):
        lines.append(params["company_name"])
    return "\n".join(lines)


def _text_to_html(text: str) -> str:
    paragraphs = [html.escape(block).replace("\n", "<br>") for block in text.split("\n\n") if block.strip()]
    body = "".join(f"<p>{paragraph}</p>" for paragraph in paragraphs)
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8"><title>Career Insight Request</title></head>'
        f'<body style="font-family: sans-serif; line-height: 1.6; color: #333;">{body}</body></html>'
    )


def _render_invitation(params: dict[str, Any]) -> EmailContent:
    copy = RELATIONSHIP_COPY[AdvisorRelationship(params["relationship_type"])]
    personal_message = params.get("personal_message")
    expiry_days = params.get("expiry_days", settings.ADVISOR_INVITATION_EXPIRY_DAYS)

    sections = [
        f"{copy.greeting} {params['advisor_name']},",
        copy.context,
        "I'm currently undertaking some career exploration and reflection, and your perspective "
        "would be incredibly valuable to me. I'd love to understand how you see my strengths, "
        "capabilities, and potential career directions.",
    ]
    if personal_message:
        sections.append(personal_message)
    sections += [
        "The process involves answering five thoughtful questions about what you've observed in "
        "my work and capabilities. It should take about 10-15 minutes.",
        f"You can access the questions here: {params['response_url']}",
        f"With appreciation,\n{_signature(params)}",
        f"This is a secure, confidential feedback process. Your responses will only be seen by "
        f"{params['user_name']}. The link expires in {expiry_days} days, and you can decline if "
        f"you're unable to participate.",
    ]
    text = "\n\n".join(sections) + "\n"
    return EmailContent(
        subject=copy.subject.format(user_name=params["user_name"]),
        text=text,
        html=_text_to_html(text),
    )


def _render_reminder(params: dict[str, Any]) -> EmailContent:
    copy = RELATIONSHIP_COPY[AdvisorRelationship(params["relationship_type"])]
    reminder_number = int(params.get("reminder_number", 1))
    final = reminder_number >= 2
    prefix = "Final reminder" if final else "Gentle reminder"

    sections = [
        f"{copy.greeting} {params['advisor_name']},",
        f"I hope this message finds you well. I'm following up on my career insight request from "
        f"{params.get('days_since_sent', 0)} days ago.",
        "I completely understand that you're busy. However, your perspective would be incredibly "
        "valuable to me as I explore my career direction.",
        f"If you have just 10-15 minutes in the coming days, I'd be so grateful for your insights:\n"
        f"{params['response_url']}",
        ("This will be my final reminder about this request. " if final else "")
        + "If you're unable to participate, that's completely fine too - just let me know and "
        "I won't send any more reminders.",
        f"With appreciation,\n{params['user_name']}",
    ]
    text = "\n\n".join(sections) + "\n"
    return EmailContent(
        subject=f"{prefix}: Career insight request from {params['user_name']}",
        text=text,
        html=_text_to_html(text),
    )


TEMPLATES = {
    INVITATION_TEMPLATE: _render_invitation,
    REMINDER_TEMPLATE: _render_reminder,
}


def render_template(template_id: str, params: dict[str, Any]) -> EmailContent:
    renderer = TEMPLATES.get(template_id)
    if renderer is None:
        raise EmailTemplateError(f"Unknown email template: {template_id}")
    try:
        return renderer(params)
    except KeyError as e:
        raise EmailTemplateError(f"Template {template_id} missing parameter {e}") from e


class EmailDispatcher(ABC):
    """send(to_address, template_id, template_params) -> success"""

    @abstractmethod
    async def send(self, to_address: str, template_id: str, template_params: dict[str, Any]) -> bool:
        ...

    async def close(self) -> None:
        return None


class LoggingEmailDispatcher(EmailDispatcher):
    """Development dispatcher: renders, logs and keeps every message."""

    def __init__(self) -> None:
        self.sent_messages: list[tuple[str, EmailContent]] = []

    async def send(self, to_address: str, template_id: str, template_params: dict[str, Any]) -> bool:
        content = render_template(template_id, template_params)
        self.sent_messages.append((to_address, content))
        logger.info(
            "Email dispatch skipped (no provider configured)",
            template_id=template_id,
            to_domain=to_address.rsplit("@", 1)[-1],
            subject=content.subject,
        )
        logger.debug("Rendered email body", template_id=template_id, text=content.text)
        return True


class SendGridEmailDispatcher(EmailDispatcher):
    """Deliver rendered templates through the SendGrid v3 API."""

    def __init__(
        self,
        api_key: str,
        from_address: str,
        from_name: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _payload(self, to_address: str, to_name: str | None, content: EmailContent) -> dict:
        recipient = {"email": to_address}
        if to_name:
            recipient["name"] = to_name
        return {
            "personalizations": [{"to": [recipient], "subject": content.subject}],
            "from": {"email": self.from_address, "name": self.from_name},
            "content": [
                {"type": "text/plain", "value": content.text},
                {"type": "text/html", "value": content.html},
            ],
            "tracking_settings": {
                "click_tracking": {"enable": True},
                "open_tracking": {"enable": True},
            },
        }

    async def send(self, to_address: str, template_id: str, template_params: dict[str, Any]) -> bool:
        content = render_template(template_id, template_params)
        payload = self._payload(to_address, template_params.get("advisor_name"), content)

        try:
            response = await self._client.post(
                SENDGRID_SEND_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.RequestError as e:
            logger.error(
                "SendGrid request failed",
                template_id=template_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code != 202:
            logger.error(
                "SendGrid rejected email",
                template_id=template_id,
                status_code=response.status_code,
                body=response.text[:200],
            )
            return False

        logger.info("Email accepted by SendGrid", template_id=template_id)
        return True

    async def close(self) -> None:
        await self._client.aclose()


def build_email_dispatcher() -> EmailDispatcher:
    """SendGrid when an API key is configured, logging otherwise."""
    if settings.SENDGRID_API_KEY:
        return SendGridEmailDispatcher(
            api_key=settings.SENDGRID_API_KEY,
            from_address=settings.EMAIL_FROM_ADDRESS,
            from_name=settings.EMAIL_FROM_NAME,
            timeout=settings.EMAIL_DISPATCH_TIMEOUT_SECONDS,
        )
    logger.warning("SENDGRID_API_KEY not set, emails will be logged instead of sent")
    return LoggingEmailDispatcher()
