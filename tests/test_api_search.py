"""Tests for the search and card lookup endpoints."""

from httpx import AsyncClient


def result_names(response) -> list[str]:
    return [card["name"] for card in response.json()["results"]]


class TestSearchEndpoint:
    async def test_unbuilt_index_is_503(self, client: AsyncClient) -> None:
        """An unbuilt index is reported distinctly, not as zero results."""
        response = await client.get("/search", params={"q": "bolt"})

        assert response.status_code == 503
        failure = response.json()["failure"]
        assert failure["kind"] == "index_unavailable"
        assert failure["suggestion"]

    async def test_query_string(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/search", params={"q": "t:instant c:u"})

        assert response.status_code == 200
        assert result_names(response) == ["Counterspell", "Opt"]

    async def test_structured_params(self, built_client: AsyncClient) -> None:
        response = await built_client.get(
            "/search",
            params={"type": "creature", "powerMin": "4", "identity": "ur"},
        )

        assert result_names(response) == ["Niv-Mizzet, Parun"]

    async def test_set_and_rarity(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/search", params={"set": "lea", "rarity": "Common"})

        assert result_names(response) == ["Lightning Bolt"]

    async def test_card_fields_are_camel_case(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/search", params={"name": "counterspell"})

        card = response.json()["results"][0]
        assert card["canonicalKey"] == "oracle-counterspell"
        assert card["representativePrintingId"] == "cs-mh2"
        assert card["latestSetCode"] == "MH2"
        assert card["manaValue"] == 2.0
        assert card["colors"] == ["U"]
        assert card["ownedQuantity"] == 0
        assert card["ownedFoilQuantity"] == 0

    async def test_sort_and_meta(self, built_client: AsyncClient) -> None:
        response = await built_client.get(
            "/search", params={"sortKey": "manaValue", "sortDir": "desc"}
        )

        data = response.json()
        assert data["meta"]["sortKey"] == "manaValue"
        assert data["meta"]["sortDir"] == "desc"
        assert result_names(response)[:2] == ["Niv-Mizzet, Parun", "Counterspell"]

    async def test_legacy_sort(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/search", params={"sort": "newest"})

        assert response.json()["meta"]["sortKey"] == "releaseDate"
        assert result_names(response)[0] == "Counterspell"

    async def test_default_and_max_limit(self, built_client: AsyncClient) -> None:
        default = await built_client.get("/search")
        clamped = await built_client.get("/search", params={"limit": 100})

        assert len(default.json()["results"]) == 4
        assert clamped.json()["meta"]["limit"] == 5
        assert len(clamped.json()["results"]) == 5

    async def test_offset_past_end_is_empty_page(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/search", params={"offset": 50})

        assert response.status_code == 200
        assert response.json()["results"] == []

    async def test_malformed_query_degrades(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/search", params={"q": 'o:"draw a mv<=x'})

        assert response.status_code == 200

    async def test_owned_quantities_summed(self, built_client: AsyncClient) -> None:
        await built_client.post("/collection/cs-lea/adjust", json={"delta": 2})
        await built_client.post("/collection/cs-mh2/adjust", json={"delta": 1, "foil": True})

        response = await built_client.get("/search", params={"q": "counterspell"})

        card = response.json()["results"][0]
        assert card["ownedQuantity"] == 2
        assert card["ownedFoilQuantity"] == 1


class TestCardEndpoints:
    async def test_card_detail(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/cards/oracle-counterspell")

        assert response.status_code == 200
        data = response.json()
        assert data["card"]["name"] == "Counterspell"
        assert [p["printingId"] for p in data["printings"]] == ["cs-mh2", "cs-lea"]
        assert data["printings"][0]["releaseDate"] == "2021-06-18"

    async def test_card_not_found(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/cards/missing")

        assert response.status_code == 404

    async def test_batch(self, built_client: AsyncClient) -> None:
        response = await built_client.post(
            "/cards/batch", json={"canonicalKeys": ["oracle-opt", "missing", "oracle-niv"]}
        )

        assert response.status_code == 200
        assert [card["name"] for card in response.json()["cards"]] == [
            "Opt",
            "Niv-Mizzet, Parun",
        ]

    async def test_printing_to_canonical_key(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/printings/bolt-lea/canonical")

        assert response.status_code == 200
        assert response.json() == {"printingId": "bolt-lea", "canonicalKey": "oracle-bolt"}

    async def test_printing_resolves_without_index(self, client: AsyncClient) -> None:
        """Before a rebuild the key is computed from the snapshot."""
        response = await client.get("/printings/gob-tst/canonical")

        assert response.status_code == 200
        assert response.json()["canonicalKey"] == "goblin-scout::normal::front"

    async def test_unknown_printing(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/printings/nope/canonical")

        assert response.status_code == 404

    async def test_set_count(self, built_client: AsyncClient) -> None:
        response = await built_client.get("/sets/lea/count")

        assert response.json() == {"setCode": "LEA", "cardCount": 2}
