"""
Marketplace Backend: API Routes Package
=======================================

Route Inventory:
    - users.py:      /api/users, /api/users/me, /api/users/{userId},
                     /api/users/avatar
    - profiles.py:   /api/profiles, /api/profiles/{userId}
    - projects.py:   /api/projects, /api/projects/{id}
    - interests.py:  /api/projects/{id}/interests[/{interestId}]
    - messages.py:   /api/projects/{id}/messages
    - files.py:      /api/files/{path}
    - health.py:     /health

Routes stay thin: parse input, pick the caller via the security
dependencies, call one service method, shape the response.
"""

from typing import Annotated

from fastapi import Path

from marketplace.schemas.common import MAX_INTEGER

# Integer path id; anything outside the column range is a 400, not a 500
RowId = Annotated[int, Path(ge=1, le=MAX_INTEGER)]
