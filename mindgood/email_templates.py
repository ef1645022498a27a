"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .config import FRONTEND_URL

# App theme colors - Indigo/Slate color scheme
THEME = {
    "primary": "#6366f1",
    "primary_dark": "#4f46e5",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#10b981",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              You're receiving this because you have an account with MindGood.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def appointment_confirmed_client_template(
    client_name: str,
    therapist_name: str,
    appointment_date: str,
    duration: int,
    meeting_link: str,
    amount: float,
    currency: str,
) -> str:
    """Appointment confirmation sent to the client after payment"""
    content = f"""
    <mj-text color="{THEME['text_muted']}" padding="0 0 24px 0">
      Your payment was received and your session is booked.
    </mj-text>

    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text>
      Your session with <strong>{therapist_name}</strong> is confirmed.
    </mj-text>

    <mj-text>
      Date: {appointment_date}<br/>
      Duration: {duration} minutes<br/>
      Amount paid: {amount:,.2f} {currency.upper()}
    </mj-text>

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Join from the link below a few minutes before the session starts.
    </mj-text>
    """

    return get_base_template(
        title="Your Therapy Appointment is Confirmed",
        preview_text=f"Session with {therapist_name} on {appointment_date}",
        content_sections=content,
        cta_url=meeting_link,
        cta_label="Join Session",
    )


def appointment_booked_therapist_template(
    therapist_name: str,
    client_name: str,
    appointment_date: str,
    duration: int,
    meeting_link: str,
) -> str:
    content = f"""
    <mj-text>
      Hi {therapist_name},
    </mj-text>

    <mj-text>
      <strong>{client_name}</strong> booked a {duration} minute session with you on {appointment_date}.
    </mj-text>
    """

    return get_base_template(
        title="New Appointment Booked",
        preview_text=f"New session with {client_name}",
        content_sections=content,
        cta_url=meeting_link,
        cta_label="View Session",
    )


def therapist_verified_template(therapist_name: str) -> str:
    content = f"""
    <mj-text>
      Hi {therapist_name},
    </mj-text>

    <mj-text>
      Your credentials have been reviewed and your profile is now <strong>verified</strong>.
      Clients can find and book sessions with you.
    </mj-text>
    """

    return get_base_template(
        title="Your Profile is Verified",
        preview_text="Your therapist profile has been verified",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/therapist",
        cta_label="Open Dashboard",
    )


def therapist_rejected_template(therapist_name: str) -> str:
    content = f"""
    <mj-text>
      Hi {therapist_name},
    </mj-text>

    <mj-text>
      After reviewing your application we were unable to verify your credentials,
      and your account has been suspended.
    </mj-text>

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      If you believe this is a mistake, reply to this email and our team will take another look.
    </mj-text>
    """

    return get_base_template(
        title="Application Update",
        preview_text="An update on your therapist application",
        content_sections=content,
    )


def payout_completed_template(
    therapist_name: str, net_amount: float, currency: str, appointment_id: str
) -> str:
    """Payout notification MJML template"""
    content = f"""
    <mj-text>
      Hi {therapist_name},
    </mj-text>

    <mj-text align="center" font-size="32px" color="{THEME['primary']}" font-weight="800" padding="20px 0">
      {net_amount:,.2f} {currency.upper()}
    </mj-text>

    <mj-text>
      A payout for appointment {appointment_id} has been sent to your connected Stripe account.
    </mj-text>
    """

    return get_base_template(
        title="Payout Sent",
        preview_text=f"Payout of {net_amount:,.2f} {currency.upper()} sent",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/therapist/payouts",
        cta_label="View Payouts",
    )


def refund_processed_template(client_name: str, amount: float, currency: str) -> str:
    content = f"""
    <mj-text>
      Hi {client_name},
    </mj-text>

    <mj-text>
      We've refunded <strong>{amount:,.2f} {currency.upper()}</strong> to your original payment method.
      It can take 5-10 business days to appear on your statement.
    </mj-text>
    """

    return get_base_template(
        title="Refund Processed",
        preview_text=f"Refund of {amount:,.2f} {currency.upper()} processed",
        content_sections=content,
    )
