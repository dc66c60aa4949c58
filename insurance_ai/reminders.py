"""
Expiry reminders for customers' uploaded past policies.
Meant to run once a day (09:00 UTC); emails customers whose policies expire tomorrow.
"""

import html
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.email_service import EmailService
from insurance_ai.errors import EmailDeliveryError


logger = logging.getLogger(__name__)


REMINDER_TEXT = """Hello {user_name},

This is an urgent reminder that your {policy_type} insurance policy with {provider} will expire TOMORROW.

Policy Details:
- Policy Name: {policy_name}
- Policy Type: {policy_type_label}
- Provider: {provider_label}
- Premium: {premium}
- Sum Insured: {sum_insured}
- Expiration Date: {expiry} (TOMORROW)

IMMEDIATE ACTION REQUIRED: Please contact your insurance provider immediately to ensure continuous coverage.

This policy was uploaded by you to our system, and we're sending this reminder as a courtesy.
Please note that this is not an automatically renewable policy through our platform.

Thank you for using {app_name} to manage your insurance needs.

Regards,
{app_name} Team
"""

REMINDER_HTML = """<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #dc2626;">URGENT: Policy Expires Tomorrow</h2>
  <p>Hello {user_name},</p>
  <p>This is an <strong>urgent reminder</strong> that your {policy_type} insurance policy with {provider} will expire <strong>TOMORROW</strong>.</p>
  <div style="margin: 20px 0; padding: 15px; border: 1px solid #dc2626; border-radius: 5px; background-color: #fee2e2;">
    <h3 style="margin-top: 0; color: #dc2626;">Policy Details:</h3>
    <p><strong>Policy Name:</strong> {policy_name}</p>
    <p><strong>Policy Type:</strong> {policy_type_label}</p>
    <p><strong>Provider:</strong> {provider_label}</p>
    <p><strong>Premium:</strong> {premium}</p>
    <p><strong>Sum Insured:</strong> {sum_insured}</p>
    <p><strong>Expiration Date:</strong> <span style="color: #dc2626; font-weight: bold;">{expiry} (TOMORROW)</span></p>
  </div>
  <p>Please contact your insurance provider immediately to ensure continuous coverage.</p>
  <p style="margin-top: 30px;">Thank you for using {app_name} to manage your insurance needs.</p>
  <p style="margin-top: 20px;">Regards,<br>{app_name} Team</p>
</div>
"""


class PolicyNotification(BaseModel):
    policy_name: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class CustomerNotification(BaseModel):
    customer_id: str
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    policy_notifications: List[PolicyNotification] = Field(default_factory=list)


class ReminderRunResult(BaseModel):
    timestamp: datetime
    successful_customer_notifications: int
    total_policy_notifications: int
    results: List[CustomerNotification]


def expiring_on(policies: List[Dict[str, Any]], day: date) -> List[Dict[str, Any]]:
    """Policies whose expiryDate (YYYY-MM-DD, optionally with a time part) falls on day."""
    target = day.isoformat()
    return [p for p in policies if (p.get("expiryDate") or "")[:10] == target]


def _format_date(value: str) -> str:
    try:
        parsed = date.fromisoformat(value[:10])
    except ValueError:
        return value
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def _render(customer: Dict[str, Any], policy: Dict[str, Any], app_name: str) -> Dict[str, str]:
    fields = {
        "user_name": customer.get("name") or "Valued Customer",
        "policy_name": policy.get("name", ""),
        "policy_type": policy.get("type") or "",
        "policy_type_label": policy.get("type") or "Insurance Policy",
        "provider": policy.get("provider") or "your provider",
        "provider_label": policy.get("provider") or "Your Insurance Provider",
        "premium": policy.get("premium") or "Not specified",
        "sum_insured": policy.get("sumInsured") or "Not specified",
        "expiry": _format_date(policy.get("expiryDate", "")),
        "app_name": app_name,
    }
    return {
        "subject": f"URGENT: Your {fields['policy_name']} policy expires TOMORROW",
        "text": REMINDER_TEXT.format(**fields),
        "html": REMINDER_HTML.format(**{k: html.escape(str(v)) for k, v in fields.items()}),
    }


def _notify_customer(
    customer: Dict[str, Any],
    tomorrow: date,
    notifier: EmailService,
    app_name: str,
) -> CustomerNotification:
    expiring = expiring_on(customer.get("pastPolicies") or [], tomorrow)
    if not expiring:
        return CustomerNotification(customer_id=customer["_id"], success=True, message="No expiring policies found")

    logger.info(f"Found {len(expiring)} expiring past policies for customer {customer['_id']}")

    email = customer.get("email")
    if not email:
        return CustomerNotification(customer_id=customer["_id"], success=False, error="Could not determine user email")

    notifications = []
    for policy in expiring:
        rendered = _render(customer, policy, app_name)
        try:
            receipt = notifier.send(to=email, **rendered)
        except (EmailDeliveryError, ValueError) as e:
            logger.error(f"Failed to send notification for policy {policy.get('name')}: {e}")
            notifications.append(PolicyNotification(policy_name=policy.get("name", ""), success=False, error=str(e)))
            continue
        notifications.append(PolicyNotification(
            policy_name=policy.get("name", ""), success=True, message_id=receipt.message_id,
        ))

    return CustomerNotification(customer_id=customer["_id"], success=True, policy_notifications=notifications)


def send_expiry_reminders(
    store: DocumentStore,
    notifier: EmailService,
    today: Optional[date] = None,
    app_name: str = "Insurance AI",
) -> ReminderRunResult:
    """
    Email every customer whose past policy expires tomorrow.

    Args:
        store: Document store with customer records
        notifier: Email transport
        today: Reference date (defaults to today, UTC)
        app_name: Name used in the email body

    Returns:
        Per-customer and per-policy outcome of the run
    """
    today = today or datetime.now(timezone.utc).date()
    tomorrow = today + timedelta(days=1)
    logger.info(f"Checking for past policies expiring on {tomorrow.isoformat()}")

    customers = store.customers_with_past_policies()
    logger.info(f"Found {len(customers)} customers with past policies")

    results = []
    for customer in customers:
        try:
            results.append(_notify_customer(customer, tomorrow, notifier, app_name))
        except Exception as e:
            logger.exception(f"Error processing customer {customer.get('_id')}: {e}")
            results.append(CustomerNotification(customer_id=str(customer.get("_id")), success=False, error=str(e)))

    successful = sum(1 for r in results if r.success)
    sent = sum(1 for r in results if r.success for n in r.policy_notifications if n.success)
    logger.info(f"Sent {sent} policy expiration notifications to {successful} customers")

    return ReminderRunResult(
        timestamp=datetime.now(timezone.utc),
        successful_customer_notifications=successful,
        total_policy_notifications=sent,
        results=results,
    )
