"""Contact lookup for SlingFlow recipients."""

from .directory import Contact, ContactDirectory

__all__ = ["Contact", "ContactDirectory"]
