import pytest
from pydantic import ValidationError

from ravengate.auth.models.response import SUCCESS_STATUS, describe_status


class TestWebauthResponse:
    def test_success_status(self, make_response):
        assert make_response().is_success()
        assert make_response().status == SUCCESS_STATUS
        assert not make_response(status=410).is_success()

    def test_status_reasons(self, make_response):
        assert make_response(status=410).status_reason() == (
            "the user cancelled the authentication request"
        )
        assert describe_status(999) is None

    def test_response_is_immutable(self, make_response):
        response = make_response()

        with pytest.raises(ValidationError):
            response.principal = "mallory"

    def test_missing_status_rejected(self, make_response):
        with pytest.raises(ValidationError):
            make_response(status=None)
