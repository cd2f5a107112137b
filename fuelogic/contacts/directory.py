# fuelogic/contacts/directory.py
"""
Read-only lookup over the contacts table.

Contacts are maintained elsewhere; SlingFlow registrations only reference
them by id, and the registry and dispatcher resolve those ids here.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import bindparam, text

from ..db.engine import SessionFactory, session_scope


@dataclass(frozen=True)
class Contact:
    """A notification recipient."""
    id: str
    owner_id: str
    name: str
    phone: Optional[str]
    email: Optional[str]
    kind: str
    active: bool

    def as_recipient(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("owner_id")
        data.pop("active")
        return data


class ContactDirectory:
    """Resolves contact ids to active contacts."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def resolve(self, contact_ids: Sequence[str]) -> List[Contact]:
        """
        Active contacts for the given ids, in the order the ids were given.

        Unknown or inactive ids are left out.
        """
        if not contact_ids:
            return []

        query = text("""
            SELECT id, owner_id, name, phone, email, kind, active
            FROM contacts
            WHERE id IN :ids AND active = :active
        """).bindparams(bindparam("ids", expanding=True))

        with session_scope(self.session_factory) as session:
            rows = session.execute(
                query, {"ids": list(contact_ids), "active": True}
            ).fetchall()

        by_id = {str(row[0]): _row_to_contact(row) for row in rows}
        return [by_id[cid] for cid in contact_ids if cid in by_id]

    def missing(self, contact_ids: Sequence[str]) -> List[str]:
        """Ids that do not resolve to an active contact."""
        found = {c.id for c in self.resolve(contact_ids)}
        return [cid for cid in contact_ids if cid not in found]

    def list_internal(self, owner_id: str) -> List[Contact]:
        """Active internal contacts of an owner, selectable as recipients."""
        with session_scope(self.session_factory) as session:
            rows = session.execute(
                text("""
                    SELECT id, owner_id, name, phone, email, kind, active
                    FROM contacts
                    WHERE owner_id = :owner_id
                      AND active = :active
                      AND kind = 'interno'
                    ORDER BY name ASC
                """),
                {"owner_id": owner_id, "active": True},
            ).fetchall()
        return [_row_to_contact(row) for row in rows]


def _row_to_contact(row) -> Contact:
    return Contact(
        id=str(row[0]),
        owner_id=str(row[1]),
        name=row[2],
        phone=row[3],
        email=row[4],
        kind=row[5],
        active=bool(row[6]),
    )
