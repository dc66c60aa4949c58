"""
Customer-to-insurer escalation.
Emails the insurer that owns a policy on the customer's behalf; when delivery fails the
inquiry is recorded for manual follow-up instead of failing the conversation.
"""

import html
import logging
from typing import Any, Dict, Optional

from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.email_service import EmailService
from insurance_ai.errors import ContextNotFoundError, EmailDeliveryError


logger = logging.getLogger(__name__)


INQUIRY_TEXT = """Support Team at {company},

A customer has a question regarding their policy that requires your assistance.

Customer Details:
- Name: {customer_name}
- Email: {customer_email}
{phone_line}- Policy ID: {policy_id}
- Policy Name: {policy_name}

Customer's Question:
{message}

Please respond directly to the customer at their email address provided above.

This message was sent via {app_name} platform.
"""

INQUIRY_HTML = """<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>Customer Policy Inquiry</h2>
  <p>Support Team at {company},</p>
  <p>A customer has a question regarding their policy that requires your assistance.</p>
  <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">
    <h3>Customer Details:</h3>
    <ul>
      <li><strong>Name:</strong> {customer_name}</li>
      <li><strong>Email:</strong> {customer_email}</li>
      {phone_item}<li><strong>Policy ID:</strong> {policy_id}</li>
      <li><strong>Policy Name:</strong> {policy_name}</li>
    </ul>
  </div>
  <div style="background-color: #eef6ff; padding: 15px; border-radius: 5px; border-left: 4px solid #4285f4;">
    <h3>Customer's Question:</h3>
    <p>{message}</p>
  </div>
  <p>Please respond directly to the customer at their email address provided above.</p>
  <p style="color: #666; font-size: 12px; margin-top: 30px;">This message was sent via {app_name} platform.</p>
</div>
"""

SENT_MESSAGE = "Your message has been sent to the insurer. They will contact you directly."
RECORDED_MESSAGE = "Your inquiry has been recorded. The insurer will be notified and contact you soon."


class InsurerInquiryService:
    """Sends policy inquiries to the insurer that issued the policy."""

    def __init__(self, store: DocumentStore, notifier: EmailService, app_name: str = "Insurance AI"):
        self.store = store
        self.notifier = notifier
        self.app_name = app_name

    def send_inquiry(
        self,
        policy_id: str,
        customer_name: str,
        customer_email: str,
        subject: str,
        message: str,
        customer_phone: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Email the insurer about a customer's question.

        Returns:
            Success-shaped payload for the model; emailFailed is set when the
            inquiry was only recorded for follow-up.

        Raises:
            ContextNotFoundError: the policy or its insurer does not exist
        """
        policy = self.store.get_policy(policy_id)
        if not policy:
            raise ContextNotFoundError("Policy not found")

        insurer = self.store.get_insurer(policy.get("insurer", ""))
        if not insurer:
            raise ContextNotFoundError("Insurer not found")

        fields = {
            "company": insurer["companyName"],
            "customer_name": customer_name,
            "customer_email": customer_email,
            "policy_id": policy_id,
            "policy_name": policy.get("name", ""),
            "app_name": self.app_name,
        }
        text = INQUIRY_TEXT.format(
            phone_line=f"- Phone: {customer_phone}\n" if customer_phone else "",
            message=message,
            **fields,
        )
        escaped = {k: html.escape(str(v)) for k, v in fields.items()}
        body_html = INQUIRY_HTML.format(
            phone_item=(
                f"<li><strong>Phone:</strong> {html.escape(customer_phone)}</li>\n      "
                if customer_phone else ""
            ),
            message=html.escape(message).replace("\n", "<br>"),
            **escaped,
        )

        try:
            receipt = self.notifier.send(
                to=insurer["email"],
                subject=f"Policy Inquiry: {subject}",
                text=text,
                html=body_html,
                reply_to=customer_email,
            )
        except EmailDeliveryError as e:
            logger.error(f"Email to insurer {insurer['companyName']} failed: {e}")
            self.store.record_inquiry({
                "policyId": policy_id,
                "insurerId": insurer["_id"],
                "customerName": customer_name,
                "customerEmail": customer_email,
                "customerPhone": customer_phone,
                "subject": subject,
                "message": message,
                "deliveryError": str(e),
            })
            return {"success": True, "message": RECORDED_MESSAGE, "emailFailed": True}

        logger.info(
            f"Email sent to insurer {insurer['companyName']} at {insurer['email']} using {receipt.provider}"
        )
        return {"success": True, "message": SENT_MESSAGE, "provider": receipt.provider}
