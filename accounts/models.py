"""
Account data returned by the resolvers and the account service.
"""
import datetime
from dataclasses import dataclass, asdict, field
from typing import Dict, List, Optional, Any

from accounts.mfa import MfaType

NO_ACCOUNT = "NO_ACCOUNT"


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class AccountDetail:
    id: Optional[str]
    email: Optional[str]
    mfa_status: str
    user_status: Optional[str]
    groups: List[str] = field(default_factory=list)
    created_at: Optional[datetime.datetime] = None
    person_id: Optional[str] = None

    @classmethod
    def no_account(cls) -> "AccountDetail":
        return cls(id=None, email=None, mfa_status=NO_ACCOUNT, user_status=NO_ACCOUNT)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mfa_status"] = str(self.mfa_status)
        data["created_at"] = _iso(self.created_at)
        return data


@dataclass
class AuthEvent:
    event_id: str
    timestamp: Optional[datetime.datetime]
    event_type: str
    event_outcome: str
    device_name: Optional[str] = None
    challenge_summary: str = ""

    @classmethod
    def from_cognito(cls, event: Dict[str, Any]) -> "AuthEvent":
        challenges = ", ".join(
            f"{c.get('ChallengeName')}:{c.get('ChallengeResponse')}"
            for c in event.get("ChallengeResponses", [])
        )
        return cls(
            event_id=event.get("EventId"),
            timestamp=event.get("CreationDate"),
            event_type=event.get("EventType"),
            event_outcome=event.get("EventResponse"),
            device_name=(event.get("EventContextData") or {}).get("DeviceName"),
            challenge_summary=challenges,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = _iso(self.timestamp)
        return data


@dataclass
class DuplicateResolution:
    """Outcome of choosing a survivor among duplicate accounts for one person."""
    person_id: str
    candidates: List[str]
    survivor: Optional[str] = None
    # Most recent successful sign-in per candidate, only populated when the
    # email match did not decide.
    last_sign_ins: Dict[str, Optional[datetime.datetime]] = field(default_factory=dict)
    deleted: List[str] = field(default_factory=list)

    @property
    def decided(self) -> bool:
        return self.survivor is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "personId": self.person_id,
            "candidates": self.candidates,
            "survivor": self.survivor,
            "decided": self.decided,
            "lastSignIns": {k: _iso(v) for k, v in self.last_sign_ins.items()},
            "deleted": self.deleted,
        }
