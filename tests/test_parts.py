"""
Tests for the parts catalog.
"""

import pytest

BASE = "/api/v1/parts-catalog"


@pytest.fixture
def make_part(client, headers):
    def _make(part_number="15412-KWN-901", name="Oil Filter", price=850):
        response = client.post(
            f"{BASE}/", json={"part_number": part_number, "name": name, "price": price}, headers=headers["manager"]
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make


class TestPartsCatalog:

    def test_search_by_number_or_name(self, client, headers, make_part):
        make_part()
        make_part("06455-KVB-T01", "Brake Pad Set", 1450)

        by_name = client.get(f"{BASE}/", params={"q": "brake"}, headers=headers["technician"]).json()
        by_number = client.get(f"{BASE}/", params={"q": "KWN"}, headers=headers["technician"]).json()

        assert [p["name"] for p in by_name] == ["Brake Pad Set"]
        assert [p["part_number"] for p in by_number] == ["15412-KWN-901"]

    def test_part_number_is_unique(self, client, headers, make_part):
        make_part()
        body = {"part_number": "15412-KWN-901", "name": "Duplicate", "price": 1}
        assert client.post(f"{BASE}/", json=body, headers=headers["admin"]).status_code == 409

    def test_rename_onto_existing_number(self, client, headers, make_part):
        make_part()
        other = make_part("06455-KVB-T01", "Brake Pad Set", 1450)

        response = client.patch(f"{BASE}/{other['id']}", json={"part_number": "15412-KWN-901"}, headers=headers["admin"])

        assert response.status_code == 409

    def test_price_update(self, client, headers, make_part):
        part = make_part()

        response = client.patch(f"{BASE}/{part['id']}", json={"price": 900}, headers=headers["manager"])

        assert response.status_code == 200
        assert response.json()["price"] == 900

    def test_negative_price_rejected(self, client, headers):
        body = {"part_number": "X-1", "name": "Bad", "price": -5}
        assert client.post(f"{BASE}/", json=body, headers=headers["admin"]).status_code == 422

    def test_front_desk_read_only(self, client, headers, make_part):
        part = make_part()
        assert client.delete(f"{BASE}/{part['id']}", headers=headers["jobcard"]).status_code == 403
        assert client.delete(f"{BASE}/{part['id']}", headers=headers["admin"]).status_code == 204
        assert client.get(f"{BASE}/{part['id']}", headers=headers["jobcard"]).status_code == 404
