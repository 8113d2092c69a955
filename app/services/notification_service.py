"""
Registration notifications.

After a registration commits, the participant receives a confirmation with
their signed waiver attached and the admin address receives a copy. Sending
runs in a background task on plain snapshots of the committed rows; a failed
send is logged and never undoes the registration.
"""
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Optional

from app.config import settings
from app.core.email_service import EmailAttachment, EmailService, get_email_service
from app.core.logging_config import get_logger

logger = get_logger(__name__)

CANCELLATION_POLICY = (
    "1. Cancellations made 30 days or more before the trip date will receive a full refund.\n"
    "2. Cancellations made 15-29 days before the trip date will receive a 50% refund.\n"
    "3. Cancellations made less than 15 days before the trip date are non-refundable.\n"
    "4. No-shows on the trip date are non-refundable.\n"
    "5. Trip organizers reserve the right to cancel trips due to weather, safety concerns, "
    "or insufficient participation."
)

WAIVER_TEXT = (
    "I, the undersigned, hereby acknowledge that I am voluntarily participating in this trip and related "
    "activities. I understand that such participation involves inherent risks, including but not limited to "
    "personal injury, property damage, or death.\n\n"
    "In consideration of being permitted to participate in this trip, I hereby:\n\n"
    "1. WAIVE, RELEASE, AND DISCHARGE the trip organizers, their officers, employees, and agents from any "
    "and all liability.\n"
    "2. ASSUME ALL RISKS associated with participation in this trip, whether known or unknown.\n"
    "3. AGREE TO INDEMNIFY AND HOLD HARMLESS the trip organizers from any claims, actions, or losses.\n"
    "4. CONSENT to receive emergency medical treatment if necessary.\n\n"
    "I have read this waiver, fully understand its terms, and sign it freely and voluntarily."
)


def registration_snapshot(registration) -> Dict[str, Any]:
    """Detach the fields the notifier needs from an ORM row"""
    return {
        "registration_id": registration.registration_id,
        "first_name": registration.first_name,
        "last_name": registration.last_name,
        "email": registration.email,
        "phone": registration.phone,
        "seat_number": registration.seat_number,
        "payment_method": getattr(registration.payment_method, "value", registration.payment_method),
        "paid": registration.paid,
        "has_signature": bool(registration.signature_data),
        "added_by_admin": registration.added_by_admin,
        "registration_date": registration.registration_date,
    }


def trip_snapshot(trip) -> Dict[str, Any]:
    return {
        "trip_id": trip.trip_id,
        "title": trip.title,
        "date": trip.date,
        "driver_name": trip.driver_name,
        "whatsapp_group_link": trip.whatsapp_group_link,
    }


def _format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "TBD"


def _format_time(value: Optional[datetime]) -> str:
    return value.strftime("%H:%M UTC") if value else "TBD"


class RegistrationNotifier:
    def __init__(self, email_service: EmailService, admin_email: Optional[str]):
        self.email_service = email_service
        self.admin_email = admin_email

    def render_waiver(self, registration: Dict[str, Any], trip: Dict[str, Any]) -> str:
        """Plain-text waiver document for one participant"""
        signed = "[Digital signature on file]" if registration.get("has_signature") else "[Not signed]"
        return "\n".join([
            "TRIP WAIVER & REGISTRATION",
            "",
            "Trip Information",
            f"Trip: {trip['title']}",
            f"Date: {_format_date(trip.get('date'))}",
            "",
            "Participant Information",
            f"Name: {registration['first_name']} {registration['last_name']}",
            f"Email: {registration['email']}",
            f"Phone: {registration['phone']}",
            f"Seat Number: {registration['seat_number']}",
            "",
            "Cancellation Policy",
            CANCELLATION_POLICY,
            "",
            "Waiver of Liability and Assumption of Risk",
            WAIVER_TEXT,
            "",
            f"Date: {_format_date(registration.get('registration_date'))}",
            f"Digital Signature: {signed}",
        ])

    def _participant_html(self, registration: Dict[str, Any], trip: Dict[str, Any]) -> str:
        whatsapp = ""
        if trip.get("whatsapp_group_link"):
            link = escape(trip["whatsapp_group_link"])
            whatsapp = f'<p>Join the trip group: <a href="{link}">{link}</a></p>'
        name = escape(f"{registration['first_name']} {registration['last_name']}")
        return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1 style="color: #00BCD4;">Registration Confirmed!</h1>
            <p>Dear {name},</p>
            <p>Thank you for registering for <strong>{escape(trip['title'])}</strong>!</p>
            <div style="background-color: #E0F7FA; padding: 20px; border-radius: 8px; margin: 20px 0;">
                <p><strong>Date:</strong> {_format_date(trip.get('date'))}</p>
                <p><strong>Time:</strong> {_format_time(trip.get('date'))}</p>
                <p><strong>Your Seat:</strong> #{registration['seat_number']}</p>
            </div>
            {whatsapp}
            <p><strong>Important:</strong> Your signed waiver is attached to this email for your records.</p>
            <p>Best regards,<br>The {escape(self.email_service.app_name)} Team</p>
        </div>
        """

    def _admin_html(self, registration: Dict[str, Any], trip: Dict[str, Any]) -> str:
        payment = "Card Payment" if registration.get("payment_method") == "card" else "Pay on Trip"
        name = escape(f"{registration['first_name']} {registration['last_name']}")
        email = escape(registration["email"])
        return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h2 style="color: #00BCD4;">New Registration Received</h2>
            <p><strong>Trip:</strong> {escape(trip['title'])} ({_format_date(trip.get('date'))} {_format_time(trip.get('date'))})</p>
            <p><strong>Name:</strong> {name}</p>
            <p><strong>Email:</strong> <a href="mailto:{email}">{email}</a></p>
            <p><strong>Phone:</strong> {escape(registration['phone'])}</p>
            <p><strong>Seat Number:</strong> #{registration['seat_number']}</p>
            <p><strong>Payment Method:</strong> {payment}</p>
            <p><strong>Payment Status:</strong> {'Paid' if registration.get('paid') else 'Not Paid'}</p>
            <p><strong>Added by admin:</strong> {'Yes' if registration.get('added_by_admin') else 'No'}</p>
        </div>
        """

    def notify_registration(self, registration: Dict[str, Any], trip: Dict[str, Any]) -> Dict[str, bool]:
        """Send the participant confirmation and the admin copy; never raises"""
        result = {"participant": False, "admin": False}
        try:
            waiver = self.render_waiver(registration, trip)
            result["participant"] = self.email_service.send_email(
                to_emails=registration["email"],
                subject=f"Registration Confirmed: {trip['title']}",
                html_content=self._participant_html(registration, trip),
                attachments=[
                    EmailAttachment(
                        filename="trip-waiver.txt",
                        content=waiver.encode("utf-8"),
                        content_type="text/plain",
                    )
                ],
            )
            if self.admin_email:
                result["admin"] = self.email_service.send_email(
                    to_emails=self.admin_email,
                    subject=f"New Registration: {trip['title']}",
                    html_content=self._admin_html(registration, trip),
                )
            else:
                logger.warning("ADMIN_NOTIFICATION_EMAIL is not set, skipping admin copy")
        except Exception as e:
            logger.exception(
                f"Notification for registration {registration.get('registration_id')} failed: {e}"
            )
        return result

    def notify_registrations(self, registrations: List[Dict[str, Any]], trip: Dict[str, Any]) -> None:
        for registration in registrations:
            self.notify_registration(registration, trip)


def get_registration_notifier() -> RegistrationNotifier:
    """Dependency injection for the registration notifier"""
    return RegistrationNotifier(get_email_service(), settings.ADMIN_NOTIFICATION_EMAIL)
