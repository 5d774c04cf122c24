"""Participant identities and linked-account resolution for ledger calculations."""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple, Union


@dataclass(frozen=True)
class SelfParticipant:
    """The owner of an expense, or the viewer of a computed ledger."""

    def __repr__(self):
        return "SELF"


@dataclass(frozen=True)
class FriendParticipant:
    """A contact record owned by one account."""
    friend_id: int


@dataclass(frozen=True)
class AccountParticipant:
    """A registered account the viewer has no contact record for."""
    user_id: int


Participant = Union[SelfParticipant, FriendParticipant, AccountParticipant]

SELF = SelfParticipant()

# ("user", user_id) or ("friend", friend_id)
IdentityKey = Tuple[str, int]


def participant_from_column(friend_id: Optional[int]) -> Participant:
    """Split rows and payers store NULL for the expense owner."""
    if friend_id is None:
        return SELF
    return FriendParticipant(friend_id)


def participant_to_column(participant: Participant) -> Optional[int]:
    if isinstance(participant, FriendParticipant):
        return participant.friend_id
    if isinstance(participant, SelfParticipant):
        return None
    raise ValueError(f"{participant!r} cannot be stored on a split row")


@dataclass(frozen=True)
class FriendIdentity:
    friend_id: int
    owner_id: int
    name: str
    linked_user_id: Optional[int] = None


class IdentityResolver:
    """
    Resolve friend references to the account identity they stand for.

    Several owners may each keep their own contact record for the same
    person. When those records carry the same linked_user_id they denote
    one identity, and balances are folded across them.

    Args:
        friends: Contact records referenced by the ledger being computed.
        viewer_id: The account the computation is presented to.
        account_names: Display names for registered accounts.
    """

    def __init__(
        self,
        friends: Iterable[FriendIdentity] = (),
        viewer_id: Optional[int] = None,
        account_names: Optional[Dict[int, str]] = None
    ):
        self.friends = {f.friend_id: f for f in friends}
        self.viewer_id = viewer_id
        self.account_names = dict(account_names or {})

    def linked_user_id(self, friend_id: int) -> Optional[int]:
        friend = self.friends.get(friend_id)
        return friend.linked_user_id if friend else None

    def resolves_to(self, friend_id: Optional[int], user_id: Optional[int]) -> bool:
        if friend_id is None or user_id is None:
            return False
        return self.linked_user_id(friend_id) == user_id

    def identity_key(self, participant: Participant, owner_id: Optional[int]) -> IdentityKey:
        """
        Map a participant, as seen from the ledger of owner_id, to a global key.

        The owner sentinel becomes the owner's account. A linked friend becomes
        the linked account. An unlinked friend stays its own identity.
        """
        if isinstance(participant, SelfParticipant):
            if owner_id is None:
                owner_id = self.viewer_id
            return ("user", owner_id)
        if isinstance(participant, AccountParticipant):
            return ("user", participant.user_id)
        linked = self.linked_user_id(participant.friend_id)
        if linked is not None:
            return ("user", linked)
        return ("friend", participant.friend_id)

    def participant_for_key(self, key: IdentityKey) -> Participant:
        """Viewer-relative participant for an identity missing from the roster."""
        kind, ident = key
        if kind == "friend":
            return FriendParticipant(ident)
        if ident == self.viewer_id:
            return SELF
        for friend in self.friends.values():
            if friend.owner_id == self.viewer_id and friend.linked_user_id == ident:
                return FriendParticipant(friend.friend_id)
        return AccountParticipant(ident)

    def display_name(self, participant: Participant) -> str:
        if isinstance(participant, SelfParticipant):
            return "You"
        if isinstance(participant, FriendParticipant):
            friend = self.friends.get(participant.friend_id)
            return friend.name if friend else "Unknown"
        return self.account_names.get(participant.user_id, f"User {participant.user_id}")
