# booking.py
# Client-side rules for the doctors, appointments and medicines panels.
# Every check returns (ok, message) so callers can show the message as-is.

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

from .records import Doctor, Medicine, parse_date
from .validation import (
    is_valid_card,
    is_valid_cvv,
    is_valid_expiry,
    is_valid_mobile,
    is_valid_name,
    is_valid_upi,
)


# ---------------------------------------------------------------------------
# Doctor search
# ---------------------------------------------------------------------------

# Symptom keyword → specialisations that treat it
SYMPTOM_MAP: Dict[str, List[str]] = {
    "fever": ["General Physician", "Internal Medicine"],
    "heart": ["Cardiologist"],
    "skin":  ["Dermatologist"],
    "child": ["Pediatrician"],
    "ear":   ["ENT"],
    "bone":  ["Orthopedic"],
    "brain": ["Neurologist"],
}


def filter_doctors(
    doctors: List[Doctor],
    query: str = "",
    specialization: str = "",
) -> List[Doctor]:
    """
    Filter doctors by symptom keyword or free text, then by specialisation.

    A query that is a known symptom selects the matching specialisations;
    any other query is a case-insensitive substring match on name or
    specialisation.
    """
    q = (query or "").strip().lower()
    result = list(doctors)
    if q:
        if q in SYMPTOM_MAP:
            specs = SYMPTOM_MAP[q]
            result = [d for d in result if d.specialization in specs]
        else:
            result = [
                d for d in result
                if q in d.name.lower() or q in d.specialization.lower()
            ]
    if specialization:
        result = [d for d in result if d.specialization == specialization]
    return result


def list_specializations(doctors: List[Doctor]) -> List[str]:
    return sorted({d.specialization for d in doctors if d.specialization})


# ---------------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------------

@dataclass
class AppointmentRequest:
    patient_name: str
    mobile: str
    date: str                       # ISO date from the form
    doctor_id: Optional[str] = None
    disease: str = "General"

    def to_payload(self) -> dict:
        payload = {
            "patientName": self.patient_name.strip(),
            "disease": (self.disease or "General").strip() or "General",
            "date": self.date,
        }
        if self.doctor_id:
            payload["doctorId"] = self.doctor_id
        return payload


def check_appointment(
    request: AppointmentRequest,
    doctors: List[Doctor],
    today: Optional[date] = None,
) -> Tuple[bool, str]:
    """Validate an appointment form before it is posted to the backend."""
    today = today or date.today()

    if not is_valid_name(request.patient_name):
        return False, "Enter valid name (letters & spaces only)."
    if not is_valid_mobile(request.mobile):
        return False, "Enter 10-digit mobile."
    selected = parse_date(request.date)
    if selected is None:
        return False, "Choose appointment date."
    if selected < today:
        return False, "Cannot book past dates."

    if request.doctor_id:
        doc = next((d for d in doctors if d.id == request.doctor_id), None)
        if doc and doc.on_leave_until and selected <= doc.on_leave_until:
            return False, f"{doc.name} is on leave until {doc.on_leave_until.isoformat()}."

    return True, "OK"


# ---------------------------------------------------------------------------
# Medicine orders and payment
# ---------------------------------------------------------------------------

PAYMENT_METHODS = ("upi", "card", "cod")


def check_order(medicine: Medicine) -> Tuple[bool, str]:
    if not medicine.in_stock:
        return False, "Medicine not available at selected pharmacy."
    return True, f"{medicine.name} — {medicine.pharmacy} — ₹{medicine.price}"


def check_delivery_details(address: str, mobile: str) -> Tuple[bool, str]:
    if not (address or "").strip():
        return False, "Enter delivery address"
    if not is_valid_mobile(mobile):
        return False, "Enter 10-digit mobile"
    return True, "OK"


def check_payment(method: str, **details: str) -> Tuple[bool, str]:
    """
    Validate demo payment details.

    Args:
        method:  "upi", "card" or "cod".
        details: upi=..., or number=..., expiry=..., cvv=...

    Returns:
        (ok, message)
    """
    method = (method or "").lower()
    if method == "upi":
        upi = details.get("upi")
        if not upi:
            return False, "Payment cancelled."
        if not is_valid_upi(upi):
            return False, "Invalid UPI format. Payment failed (demo)."
        return True, "OK"

    if method == "card":
        number = details.get("number")
        if not number:
            return False, "Payment cancelled."
        if not is_valid_card(number):
            return False, "Invalid card number. Payment failed (demo)."
        if not is_valid_expiry(details.get("expiry", "")):
            return False, "Invalid expiry."
        if not is_valid_cvv(details.get("cvv", "")):
            return False, "Invalid CVV."
        return True, "OK"

    if method == "cod":
        return True, "OK"

    return False, f"Unknown payment method: {method}"
