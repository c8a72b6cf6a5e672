"""Per-app registry of the injected collaborators.

Services resolve the academic directory, the clock and the grade-item
resolver from here unless they were handed explicit instances.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from flask import Flask, current_app

EXTENSION_KEY = 'academix.collaborators'


@dataclass
class Collaborators:
    directory: Any
    clock: Any
    grade_item_resolver: Any


def install_collaborators(
    app: Flask,
    directory: Optional[Any] = None,
    clock: Optional[Any] = None,
    grade_item_resolver: Optional[Any] = None,
) -> Collaborators:
    """Install collaborators on ``app``; omitted ones keep their current value or default."""
    from ..modules.access_control.services.directory_service import SqlAcademicDirectory
    from ..modules.gradebook.services.grade_item_resolver import NamingConventionResolver
    from ..utils.time_utils import SystemClock

    existing = app.extensions.get(EXTENSION_KEY)
    collaborators = Collaborators(
        directory=directory or (existing.directory if existing else SqlAcademicDirectory()),
        clock=clock or (existing.clock if existing else SystemClock()),
        grade_item_resolver=grade_item_resolver
        or (existing.grade_item_resolver if existing else NamingConventionResolver()),
    )
    app.extensions[EXTENSION_KEY] = collaborators
    return collaborators


def get_collaborators() -> Collaborators:
    collaborators = current_app.extensions.get(EXTENSION_KEY)
    if collaborators is None:
        collaborators = install_collaborators(current_app._get_current_object())
    return collaborators
