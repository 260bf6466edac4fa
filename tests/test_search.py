from __future__ import annotations

import httpx
import pytest

from aem_mcp.assets.search import (
    AssetSearch,
    SearchQuery,
    build_query_params,
    escape_glob,
    escape_like,
    replace_values,
)
from aem_mcp.errors import InputValidationError, SearchError


def test_escape_glob_and_like_are_distinct() -> None:
    assert escape_glob("a*b?[c]") == r"a\*b\?\[c\]"
    assert escape_glob("50%_off") == "50%_off"
    assert escape_like("50%_off") == r"50\%\_off"
    assert escape_like("a*b") == "a*b"
    assert escape_glob(None) == ""
    assert escape_like("") == ""


def test_query_params_order() -> None:
    params = build_query_params(SearchQuery(query="car", limit=5, offset=10))

    assert params[:4] == [
        ("type", "dam:Asset"),
        ("path", "/content/dam"),
        ("1_group.p.or", "true"),
        ("1_group.1_nodename", "*car*"),
    ]
    assert ("1_group.2_property", "jcr:content/metadata/dc:title") in params
    assert ("1_group.6_property.value", "%car%") in params
    assert params[-4:] == [
        ("p.limit", "5"),
        ("p.offset", "10"),
        ("orderby", "@jcr:content/jcr:lastModified"),
        ("orderby.sort", "desc"),
    ]


def test_query_params_filename_and_title() -> None:
    params = dict(build_query_params(SearchQuery(filename="logo_*", title="100%")))

    assert params["2_nodename"] == r"*logo_\**"
    assert params["3_property.value"] == r"%100\%%"
    assert "1_group.p.or" not in params


@pytest.mark.parametrize(
    ("query", "message"),
    [
        (SearchQuery(), "at least one of"),
        (SearchQuery(query="x", search_value="a"), "replaceValue"),
        (SearchQuery(query="x", limit=0), "limit"),
        (SearchQuery(query="x", offset=-1), "offset"),
    ],
)
def test_search_query_validation(query: SearchQuery, message: str) -> None:
    with pytest.raises(InputValidationError, match=message):
        query.validate()


def test_empty_replacement_is_allowed() -> None:
    SearchQuery(query="x", search_value="a", replace_value="").validate()


def test_replace_values_is_case_insensitive_and_recursive() -> None:
    value = {"dc:title": "FORD Mustang", "tags": ["ford", 3], "nested": {"brand": "Ford"}}

    assert replace_values(value, "ford", "Acme") == {
        "dc:title": "Acme Mustang",
        "tags": ["Acme", 3],
        "nested": {"brand": "Acme"},
    }
    assert replace_values("a$1b", "$1", r"\g<0>") == r"a\g<0>b"


def test_replace_values_replaces_every_occurrence() -> None:
    assert replace_values({"dc:title": "Ford Focus, ford van"}, "ford", "Acme") == {
        "dc:title": "Acme Focus, Acme van"
    }


def test_replace_values_without_match_leaves_metadata_untouched() -> None:
    metadata = {
        "dc:title": "Chevy Volt",
        "dc:subject": ["cars", 7, None, True],
        "nested": {"approved": False, "rating": 4.5, "tags": [{"label": "EV"}]},
    }

    replaced = replace_values(metadata, "zzz", "Q")

    assert replaced == metadata
    assert replaced["dc:subject"][3] is True
    assert replaced["nested"]["approved"] is False


def _search_handler(metadata_status: int = 200):
    def _handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/bin/querybuilder.json":
            return httpx.Response(
                200,
                json={
                    "total": 2,
                    "hits": [
                        {"path": "/content/dam/cars/ford.jpg"},
                        {"path": "/content/dam/cars/other.png"},
                    ],
                },
            )
        if path == "/content/dam/cars/ford.jpg/jcr:content/metadata.json":
            if metadata_status != 200:
                return httpx.Response(metadata_status)
            return httpx.Response(200, json={"dc:title": "Ford Focus", "dc:subject": ["ford"]})
        return httpx.Response(404)

    return _handler


@pytest.mark.asyncio
async def test_search_enriches_hits_with_metadata(make_caller) -> None:
    caller, transport = make_caller(_search_handler())

    result = await AssetSearch(caller).search_assets(SearchQuery(query="ford"))

    assert result["total"] == 2
    assert result["count"] == 2
    first, second = result["results"]
    assert first["title"] == "Ford Focus"
    assert first["url"] == "http://author.test/content/dam/cars/ford.jpg"
    assert second["metadata"] == {}
    assert second["title"] == "other.png"
    query = transport.requests[0].url.params
    assert query["type"] == "dam:Asset"
    assert query["1_group.1_nodename"] == "*ford*"


@pytest.mark.asyncio
async def test_search_applies_replacement_to_results(make_caller) -> None:
    caller, _ = make_caller(_search_handler())

    result = await AssetSearch(caller).search_assets(
        SearchQuery(query="ford", search_value="ford", replace_value="Acme")
    )

    first = result["results"][0]
    assert first["title"] == "Acme Focus"
    assert first["metadata"] == {"dc:title": "Acme Focus", "dc:subject": ["Acme"]}


@pytest.mark.asyncio
async def test_search_replacement_without_match_changes_nothing(make_caller) -> None:
    caller, _ = make_caller(_search_handler())

    result = await AssetSearch(caller).search_assets(
        SearchQuery(query="ford", search_value="toyota", replace_value="Acme")
    )

    first = result["results"][0]
    assert first["title"] == "Ford Focus"
    assert first["metadata"] == {"dc:title": "Ford Focus", "dc:subject": ["ford"]}


@pytest.mark.asyncio
async def test_metadata_failure_is_not_fatal(make_caller) -> None:
    caller, _ = make_caller(_search_handler(metadata_status=403))

    result = await AssetSearch(caller).search_assets(SearchQuery(query="ford"))

    assert result["count"] == 2
    assert result["results"][0]["metadata"] == {}
    assert result["results"][0]["title"] == "ford.jpg"


@pytest.mark.asyncio
async def test_unauthorized_search_names_auth_scheme(make_caller) -> None:
    caller, _ = make_caller(lambda request: httpx.Response(401))

    with pytest.raises(SearchError) as excinfo:
        await AssetSearch(caller).search_assets(SearchQuery(query="x"))

    assert excinfo.value.auth_scheme == "bearer"
    assert excinfo.value.status_code == 401
    assert "Authentication Method: Bearer token" in excinfo.value.message
    assert "http://author.test/bin/querybuilder.json" in excinfo.value.message


@pytest.mark.asyncio
async def test_unauthorized_search_with_basic_credentials(make_caller) -> None:
    caller, _ = make_caller(lambda request: httpx.Response(401), basic=True)

    with pytest.raises(SearchError) as excinfo:
        await AssetSearch(caller).search_assets(SearchQuery(query="x"))

    assert excinfo.value.auth_scheme == "basic"
    assert "username/password" in excinfo.value.message


@pytest.mark.asyncio
async def test_invalid_query_makes_no_request(make_caller) -> None:
    caller, transport = make_caller(lambda request: httpx.Response(200, json={}))

    with pytest.raises(InputValidationError):
        await AssetSearch(caller).search_assets(SearchQuery())

    assert transport.requests == []
