from unittest import mock

import pytest
from fastapi import HTTPException

from auth import verify_user


@pytest.mark.parametrize("header", [None, "", "Bearer", "Basic abc", "Bearer a b"])
def test_rejects_missing_or_malformed_header(header):
    with pytest.raises(HTTPException) as excinfo:
        verify_user(header)
    assert excinfo.value.status_code == 401


def test_returns_uid_of_valid_token():
    with mock.patch("auth.fb_auth.verify_id_token", return_value={"uid": "abc"}) as verify:
        assert verify_user("Bearer token-1") == "abc"
    verify.assert_called_once_with("token-1")


def test_invalid_token():
    with mock.patch("auth.fb_auth.verify_id_token", side_effect=ValueError("expired")):
        with pytest.raises(HTTPException) as excinfo:
            verify_user("Bearer token-1")
    assert excinfo.value.status_code == 401
    assert "expired" in excinfo.value.detail
