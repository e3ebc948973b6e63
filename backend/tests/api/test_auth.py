"""Tests for the forwarded-identity dependency."""

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from app.core.auth import CurrentUser, require_auth

pytestmark = pytest.mark.unit


class TestRequireAuth:
    @pytest.mark.asyncio
    async def test_reads_user_and_role(self):
        mock_request = MagicMock()
        mock_request.state = MagicMock()

        user = await require_auth(request=mock_request, x_user_id=" mgr-001 ", x_user_role="manager")

        assert user == CurrentUser(user_id="mgr-001", role="manager")
        assert mock_request.state.user_id == "mgr-001"

    @pytest.mark.asyncio
    async def test_role_is_optional(self):
        user = await require_auth(request=MagicMock(), x_user_id="sales-001", x_user_role="")

        assert user.role is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [None, "", "   "])
    async def test_missing_user_raises_401(self, user_id):
        with pytest.raises(HTTPException) as exc_info:
            await require_auth(request=MagicMock(), x_user_id=user_id, x_user_role="manager")
        assert exc_info.value.status_code == 401
