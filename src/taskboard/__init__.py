"""Users and tasks board served through an explicit async request pipeline."""

from taskboard.app import build_app, create_app

__all__ = ["build_app", "create_app"]
