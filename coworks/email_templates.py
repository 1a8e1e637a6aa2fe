"""
MJML Email Templates
Customer notifications for accounts, bookings and verification
"""

from typing import Optional

from .config import BUSINESS_NAME, FRONTEND_URL

THEME = {
    "primary": "#2563eb",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
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
        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="32px 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="#94a3b8" padding="0">
              You're receiving this because you have an account with {BUSINESS_NAME}.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def password_reset_template(reset_link: str) -> str:
    content = f"""
    <mj-text>
      We received a request to reset your password.
    </mj-text>

    <mj-text>
      Click the button below to create a new password. This link will expire in 1 hour.
    </mj-text>

    <mj-text font-size="13px" color="{THEME['text_muted']}">
      If you didn't request this, you can safely ignore this email. Your password won't be changed.
    </mj-text>
    """

    return get_base_template(
        title="Reset Your Password",
        preview_text=f"Reset your {BUSINESS_NAME} password",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Reset Password",
    )


def booking_confirmation_template(
    customer_name: str,
    branch_name: str,
    seating_type: str,
    seat_codes: list[str],
    start: str,
    end: str,
    total_amount: float,
) -> str:
    """Booking confirmed after payment"""
    seats = ", ".join(seat_codes)
    content = f"""
    <mj-text>
      Hi {customer_name},
    </mj-text>

    <mj-text>
      Your payment was received and your booking is confirmed.
    </mj-text>

    <mj-text padding="0 0 0 20px">
      • Branch: {branch_name}<br/>
      • Seating: {seating_type}<br/>
      • Seat(s): {seats}<br/>
      • From: {start}<br/>
      • Until: {end}<br/>
      • Amount paid: INR {total_amount:,.2f}
    </mj-text>
    """

    return get_base_template(
        title="Booking Confirmed",
        preview_text=f"Your booking at {branch_name} is confirmed",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/bookings",
        cta_label="View Bookings",
    )


def verification_status_template(customer_name: str, status: str, notes: Optional[str] = None) -> str:
    if status == "APPROVED":
        message = "Your profile has been verified. You can now book seats and meeting rooms."
    else:
        message = "We could not verify your profile. Please upload the requested documents again."

    notes_section = ""
    if notes:
        notes_section = f"""
    <mj-text color="{THEME['text_muted']}">
      Note from our team: {notes}
    </mj-text>
    """

    content = f"""
    <mj-text>
      Hi {customer_name},
    </mj-text>

    <mj-text>
      {message}
    </mj-text>
    {notes_section}
    """

    return get_base_template(
        title="Profile Verification Update",
        preview_text="Your profile verification status has changed",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/profile",
        cta_label="Open Profile",
    )
