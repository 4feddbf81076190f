"""
Integration tests for the trials API endpoints
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from main import app
from trial_query.core.config import settings

QUERY_URL = f"{settings.API_V1_STR}/trials/query"
FIELD_VALUES_URL = f"{settings.API_V1_STR}/trials/field-values"

RECORDS = [
    {
        "trial_id": "TB-1",
        "overview": {"title": "Pembrolizumab in NSCLC", "primary_drugs": "Pembrolizumab", "status": "Open"},
        "results": [{"results_available": "Yes"}],
    },
    {
        "trial_id": "TB-2",
        "overview": {"title": "Aspirin prevention", "primary_drugs": "Aspirin", "status": "Closed"},
    },
    {
        "trial_id": "TB-3",
        "overview": {"title": "Keytruda combination", "primary_drugs": "Keytruda", "status": "Open"},
        "nct_id": "NCT0000003",
    },
]

CATALOG = [{"drug_id": "d-1", "overview": {"drug_name": "Keytruda", "generic_name": "Pembrolizumab"}}]


class TestTrialsAPI:
    """Integration tests for the trials endpoints"""

    @pytest.fixture
    def client(self):
        """Create test client"""
        return TestClient(app)

    def test_root_and_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == settings.PROJECT_NAME

    def test_query_with_alias_criterion(self, client):
        """Drug criteria are resolved through the supplied catalog"""
        response = client.post(QUERY_URL, json={
            "records": RECORDS,
            "drug_catalog": CATALOG,
            "criteria": [{"field": "primary_drugs", "operator": "is", "value": "Keytruda"}],
            "sort": {"field": "title", "direction": "asc"},
        })

        assert response.status_code == 200
        data = response.json()
        assert [t["trial_id"] for t in data["trials"]] == ["TB-3", "TB-1"]
        assert data["total_items"] == 2
        assert data["total_pages"] == 1
        assert data["page_size"] == settings.DEFAULT_PAGE_SIZE

    def test_query_pagination_and_extra_fields(self, client):
        response = client.post(QUERY_URL, json={
            "records": RECORDS,
            "filters": {"statuses": ["Open"]},
            "page_index": 1,
            "page_size": 1,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total_items"] == 2
        assert data["total_pages"] == 2
        assert data["page_index"] == 1
        assert [t["trial_id"] for t in data["trials"]] == ["TB-3"]
        # Unmodelled record attributes survive the round trip
        assert data["trials"][0]["nct_id"] == "NCT0000003"

    def test_page_size_is_capped(self, client):
        response = client.post(QUERY_URL, json={"records": RECORDS, "page_size": 100000})
        assert response.status_code == 200
        assert response.json()["page_size"] == settings.MAX_PAGE_SIZE

    def test_invalid_body_is_rejected(self, client):
        response = client.post(QUERY_URL, json={"records": "not a list"})
        assert response.status_code == 422

        response = client.post(QUERY_URL, json={"criteria": [{"field": "title", "logic": "XOR"}]})
        assert response.status_code == 422

    def test_field_values(self, client):
        response = client.post(FIELD_VALUES_URL, json={"field": "status", "records": RECORDS})

        assert response.status_code == 200
        data = response.json()
        assert data["field"] == "status"
        assert data["options"] == [
            {"value": "Closed", "label": "Closed"},
            {"value": "Open", "label": "Open"},
        ]

    def test_field_values_unknown_field(self, client):
        response = client.post(FIELD_VALUES_URL, json={"field": "colour", "records": RECORDS})
        assert response.status_code == 400
