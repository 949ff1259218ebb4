"""Customer email tool."""
from __future__ import annotations

from pydantic import Field

from swiftship.services.notifications import CustomerNotification, Notifier
from swiftship.tools.registry import ToolInput, ToolSpec

CUSTOMER_EMAIL_TOOL = "sendCustomerEmail"


class SendCustomerEmailInput(ToolInput):
    subject: str = Field(..., min_length=1, description="Email subject line")
    message_html: str = Field(..., min_length=1, description="Email body as HTML")
    to_email: str = Field(..., min_length=1, description="Customer email address")


def customer_email_tool(notifier: Notifier) -> ToolSpec:
    async def send_customer_email(payload: SendCustomerEmailInput) -> str:
        await notifier.send(
            CustomerNotification(
                recipient=payload.to_email,
                subject=payload.subject,
                body_html=payload.message_html,
            )
        )
        return "Notification sent successfully"

    return ToolSpec(
        name=CUSTOMER_EMAIL_TOOL,
        description="Send an email to a customer",
        input_model=SendCustomerEmailInput,
        handler=send_customer_email,
    )
