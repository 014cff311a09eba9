"""
MFA type resolution from Cognito attributes and preferences.
"""
from enum import Enum
from typing import Optional


class InvalidMfaType(ValueError):
    pass


class MfaType(str, Enum):
    NO_MFA = "NO_MFA"
    EMAIL_OTP = "EMAIL_OTP"
    SMS_MFA = "SMS_MFA"
    SOFTWARE_TOKEN_MFA = "SOFTWARE_TOKEN_MFA"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_preferred_mfa(cls, preferred_mfa: Optional[str]) -> "MfaType":
        """
        Convert the native PreferredMfaSetting of an AdminGetUser response.

        An unset preference means no MFA. The NO_MFA token is never a native
        value, so receiving it (or any other unknown token) is an error.
        """
        if preferred_mfa is None:
            return cls.NO_MFA

        if preferred_mfa == cls.NO_MFA.value:
            raise InvalidMfaType(f"Cannot create MFA type from {preferred_mfa} value!")
        try:
            return cls(preferred_mfa)
        except ValueError:
            raise InvalidMfaType(f"Cannot create MFA type from {preferred_mfa} value!") from None

    @classmethod
    def from_attribute(cls, value: str) -> "MfaType":
        """Parse a stored custom:mfaType attribute value."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidMfaType(f"Unknown stored MFA type '{value}'") from None
