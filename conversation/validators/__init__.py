"""
Profile field validators for onboarding.

Validators:
- parse_dni: National id (7-10 digits)
- parse_full_name: At least first and last name
- parse_birth_date_answer: Real past date, stored as YYYY-MM-DD
- parse_address: Street address (5+ characters)
"""

from conversation.validators.profile_validators import (
    parse_address,
    parse_birth_date_answer,
    parse_dni,
    parse_full_name,
)

__all__ = [
    "parse_address",
    "parse_birth_date_answer",
    "parse_dni",
    "parse_full_name",
]
