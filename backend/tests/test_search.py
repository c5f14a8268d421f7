"""
Unit Tests for Client Search

Run with: pytest tests/test_search.py -v
"""

import logging

import pytest

from database.directory_models import ClientAttributeDB, ClientDB
from services.attributes import ClientAttribute
from services.errors import SearchCriteriaError, ValidationError
from services.search import SearchCriterion, parse_criteria, partition_criteria

CIPHERTEXT = "c1f2"


@pytest.fixture
async def population(client_store):
    """Three clients with colour attributes."""
    red = await client_store.create("red@example.com", CIPHERTEXT, [ClientAttribute("colour", "red")])
    blue = await client_store.create("blue@example.com", CIPHERTEXT, [ClientAttribute("colour", "Blue")])
    green = await client_store.create(
        "green@example.org", CIPHERTEXT,
        [ClientAttribute("colour", "green"), ClientAttribute("town", "York")]
    )
    return {"red": red, "blue": blue, "green": green}


def ids(records):
    return [r.id for r in records]


class TestParseCriteria:

    def test_mappings_are_parsed(self):
        parsed = parse_criteria([{"field": "colour", "query": "red"}])

        assert parsed == [SearchCriterion("colour", "red")]

    def test_missing_query_is_empty_string(self):
        assert parse_criteria([{"field": "colour"}]) == [SearchCriterion("colour", "")]

    def test_criterion_objects_pass_through(self):
        criterion = SearchCriterion("email", "x")

        assert parse_criteria((criterion,)) == [criterion]

    @pytest.mark.parametrize("criteria", [
        None,
        "colour=red",
        {"field": "colour", "query": "red"},
        [{"query": "red"}],
        [{"field": 3, "query": "red"}],
        ["colour"],
    ])
    def test_malformed_criteria_raise(self, criteria):
        with pytest.raises(SearchCriteriaError) as exc_info:
            parse_criteria(criteria)

        assert exc_info.value.fields == ["criteria"]
        assert isinstance(exc_info.value, ValidationError)

    def test_partition(self):
        record_filters, attribute_filters = partition_criteria([
            SearchCriterion("id", "ab"),
            SearchCriterion("email", "x"),
            SearchCriterion("mobile", "0939"),
            SearchCriterion("colour", "red"),
        ])

        assert record_filters == [("id", "ab"), ("email", "x")]
        assert attribute_filters == [("colour", "red")]


class TestClientSearch:

    @pytest.mark.asyncio
    async def test_empty_criteria_returns_nothing(self, client_search, population):
        assert await client_search.search([]) == []

    @pytest.mark.asyncio
    async def test_malformed_criteria_raise(self, client_search, population):
        with pytest.raises(SearchCriteriaError):
            await client_search.search({"field": "colour"})

    @pytest.mark.asyncio
    async def test_attribute_substring_case_insensitive(self, client_search, population):
        results = await client_search.search([{"field": "colour", "query": "BLU"}])

        assert ids(results) == [population["blue"].id]
        assert results[0].attribute_dict() == {"colour": "Blue"}

    @pytest.mark.asyncio
    async def test_attribute_criteria_are_or_ed(self, client_search, population):
        results = await client_search.search([
            {"field": "colour", "query": "red"},
            {"field": "colour", "query": "blue"},
        ])

        assert ids(results) == [population["red"].id, population["blue"].id]

    @pytest.mark.asyncio
    async def test_attribute_name_must_match(self, client_search, population):
        assert await client_search.search([{"field": "town", "query": "red"}]) == []

    @pytest.mark.asyncio
    async def test_no_attribute_match_returns_nothing(self, client_search, population):
        results = await client_search.search([
            {"field": "colour", "query": "purple"},
            {"field": "email", "query": "example"},
        ])

        assert results == []

    @pytest.mark.asyncio
    async def test_email_only(self, client_search, population):
        results = await client_search.search([{"field": "email", "query": "EXAMPLE.COM"}])

        assert ids(results) == [population["red"].id, population["blue"].id]

    @pytest.mark.asyncio
    async def test_email_and_attribute_are_and_ed(self, client_search, population):
        results = await client_search.search([
            {"field": "colour", "query": "e"},
            {"field": "email", "query": "example.org"},
        ])

        assert ids(results) == [population["green"].id]

    @pytest.mark.asyncio
    async def test_id_filter(self, client_search, population):
        target = population["green"].id

        results = await client_search.search([{"field": "id", "query": target[:12]}])

        assert target in ids(results)

    @pytest.mark.asyncio
    async def test_mobile_criteria_ignored(self, client_search, population):
        assert await client_search.search([{"field": "mobile", "query": CIPHERTEXT}]) == []

        results = await client_search.search([
            {"field": "mobile", "query": "nothing-matches-this"},
            {"field": "colour", "query": "red"},
        ])
        assert ids(results) == [population["red"].id]

    @pytest.mark.asyncio
    async def test_empty_query_matches_every_value(self, client_search, population):
        results = await client_search.search([{"field": "town", "query": ""}])

        assert ids(results) == [population["green"].id]

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, client_search, client_store, population):
        await client_store.create("pct@example.com", CIPHERTEXT, [ClientAttribute("code", "50%")])
        await client_store.create("num@example.com", CIPHERTEXT, [ClientAttribute("code", "5000")])

        results = await client_search.search([{"field": "code", "query": "0%"}])

        assert [r.email for r in results] == ["pct@example.com"]

    @pytest.mark.asyncio
    async def test_pagination(self, client_search, population):
        criteria = [{"field": "colour", "query": "e"}]

        everything = await client_search.search(criteria)
        page = await client_search.search(criteria, skip=1, limit=1)

        assert len(everything) == 3
        assert ids(page) == ids(everything)[1:2]
        assert await client_search.search(criteria, limit=0) == []

    @pytest.mark.asyncio
    async def test_negative_skip_raises(self, client_search, population):
        with pytest.raises(ValidationError) as exc_info:
            await client_search.search([{"field": "colour", "query": "red"}], skip=-1)

        assert exc_info.value.fields == ["skip"]

    @pytest.mark.asyncio
    async def test_query_text_not_logged(self, client_search, population, caplog):
        caplog.set_level(logging.DEBUG, logger="services")

        await client_search.search([{"field": "email", "query": "red@example.com"}])

        for record in caplog.records:
            assert "red@example.com" not in record.getMessage()
            assert "red@example.com" not in str(getattr(record, "details", ""))


class TestManyMatches:
    """Searches whose attribute filter matches more owners than a statement can list."""

    OWNER_COUNT = 1100

    @pytest.fixture
    async def crowd(self, db_session):
        ids = [f"{i:064x}" for i in range(self.OWNER_COUNT)]
        db_session.add_all([
            ClientDB(id=client_id, email=f"user{i}@example.com", mobile=CIPHERTEXT)
            for i, client_id in enumerate(ids)
        ])
        db_session.add_all([
            ClientAttributeDB(client_id=client_id, name="colour", value="red")
            for client_id in ids
        ])
        await db_session.commit()
        return ids

    @pytest.mark.asyncio
    async def test_first_page(self, client_search, crowd):
        results = await client_search.search([{"field": "colour", "query": "red"}], limit=10)

        assert ids(results) == crowd[:10]

    @pytest.mark.asyncio
    async def test_last_page(self, client_search, crowd):
        results = await client_search.search(
            [{"field": "colour", "query": "red"}],
            skip=self.OWNER_COUNT - 5,
            limit=10
        )

        assert ids(results) == crowd[-5:]

    @pytest.mark.asyncio
    async def test_combined_with_email_filter(self, client_search, crowd):
        results = await client_search.search([
            {"field": "colour", "query": "red"},
            {"field": "email", "query": "user1099@"},
        ])

        assert ids(results) == [crowd[1099]]
