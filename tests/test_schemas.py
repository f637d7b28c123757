from __future__ import annotations

import copy

import pytest

from learnboard.errors import DataShapeError
from learnboard.queries import QueryCatalog
from learnboard.schemas import records_for
from tests.conftest import SAMPLE_DATA

CATALOG = QueryCatalog()


class TestRecordsFor:
    def test_unwraps_record_lists(self) -> None:
        xps = records_for(CATALOG.get("xp"), SAMPLE_DATA["xp"])
        assert xps == SAMPLE_DATA["xp"]["user"][0]["xps"]

    def test_profile_is_the_user_object(self) -> None:
        user = records_for(CATALOG.get("profile"), SAMPLE_DATA["profile"])
        assert user["campus"] == "london"
        assert user["attrs"]["firstName"] == "Ada"

    def test_records_are_returned_as_sent(self) -> None:
        data = {"user": [{"transactions": [{"createdAt": "x", "amount": 1, "type": "up", "path": "/a", "objectId": 7}]}]}
        assert records_for(CATALOG.get("projectTransactions"), data)[0]["objectId"] == 7

    def test_null_amount_is_allowed(self) -> None:
        data = {"user": [{"xps": [{"amount": None, "path": "/a"}]}]}
        assert records_for(CATALOG.get("xp"), data) == [{"amount": None, "path": "/a"}]

    def test_empty_record_list(self) -> None:
        assert records_for(CATALOG.get("auditRatio"), {"user": [{"audits": []}]}) == []

    def test_missing_required_field(self) -> None:
        data = copy.deepcopy(SAMPLE_DATA["projectTransactions"])
        del data["user"][0]["transactions"][1]["type"]
        with pytest.raises(DataShapeError, match=r"projectTransactions\[1\]"):
            records_for(CATALOG.get("projectTransactions"), data)

    def test_missing_amount_key(self) -> None:
        with pytest.raises(DataShapeError):
            records_for(CATALOG.get("xp"), {"user": [{"xps": [{"path": "/a"}]}]})

    @pytest.mark.parametrize("data", [{}, {"user": []}, {"user": ["nope"]}, {"user": None}])
    def test_missing_user(self, data) -> None:
        with pytest.raises(DataShapeError):
            records_for(CATALOG.get("xp"), data)

    def test_missing_record_field(self) -> None:
        with pytest.raises(DataShapeError):
            records_for(CATALOG.get("xp"), {"user": [{"firstName": "Ada"}]})

    def test_record_field_not_a_list(self) -> None:
        with pytest.raises(DataShapeError):
            records_for(CATALOG.get("auditRatio"), {"user": [{"audits": {"grade": 1}}]})
