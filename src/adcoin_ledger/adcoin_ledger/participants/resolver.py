from __future__ import annotations

from ..core.enums import ParticipantKind
from ..core.exceptions import NotFoundError
from .model import Participant, StaffParticipant, StudentParticipant
from .repository import ParticipantLookup


class ParticipantResolver:
    """Turn (id, kind) into a Participant, scoped strictly to that kind.

    A student id looked up as staff (or the other way round) is NotFound;
    there is no fallback to the other table.
    """

    def __init__(self, lookup: ParticipantLookup):
        self._lookup = lookup

    def resolve(self, participant_id: str, kind: ParticipantKind | str) -> Participant:
        kind = ParticipantKind.parse(kind)
        if kind == ParticipantKind.STUDENT:
            student = self._lookup.get_student(participant_id)
            if student:
                return StudentParticipant(student)
        else:
            staff = self._lookup.get_staff(participant_id)
            if staff:
                return StaffParticipant(staff)
        raise NotFoundError(f"{kind.value.capitalize()} not found: {participant_id}")
