"""Session identity and persistence."""

from stepwise.session.storage import Session, SessionStore, normalize_work_dir

__all__ = ["Session", "SessionStore", "normalize_work_dir"]
