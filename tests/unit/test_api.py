"""API tests for the news & broadcast pipeline, end to end through FastAPI."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

from langchain_core.language_models.fake_chat_models import FakeListChatModel
from sqlalchemy import func, select

from app.agents.llm import get_analyzer_llm, get_parser_llm
from app.main import app
from app.core.config import get_settings
from app.models.models import (
    ActionPlan,
    AnalysisStatus,
    NewsAnalysis,
    OrgLevel,
    ParsedNews,
    ParseStatus,
    Sentiment,
)

API = "/api/v1/nb"
LEVELS = {"CENTRAL_COMMITTEE", "CONSTITUENCY_HEAD", "SECTOR_OFFICER", "BOOTH_INCHARGE", "VOLUNTEER"}


def _data(resp):
    body = resp.json()
    assert body["success"] is True, body
    return body["data"]


def _error(resp):
    body = resp.json()
    assert body["success"] is False, body
    return body["error"]


class TestHealthEndpoint:
    def test_health_returns_200(self, client):
        resp = client.get("/healthz/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"

    def test_health_includes_environment(self, client):
        resp = client.get("/healthz/")
        assert resp.json()["environment"] == "development"

    def test_responses_carry_request_id(self, client):
        resp = client.get("/healthz/")
        assert resp.headers.get("x-request-id")


class TestRootEndpoint:
    def test_root_returns_service_info(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["service"] == "ElectionCaffe News & Broadcast"


class TestAuth:
    def test_missing_token_is_401(self, client):
        resp = client.get(f"{API}/dashboard")
        assert resp.status_code == 401
        assert _error(resp)["code"] == "E1004"

    def test_tampered_token_is_401(self, client):
        resp = client.get(f"{API}/dashboard", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_pipeline_role_required_for_parse(self, client, seeded, auth_headers):
        resp = client.post(f"{API}/parse-news/{seeded['news_id']}", headers=auth_headers("VOLUNTEER"))
        assert resp.status_code == 403
        assert _error(resp)["code"] == "E1005"

    def test_any_role_can_read(self, client, auth_headers):
        resp = client.get(f"{API}/parsed-news", headers=auth_headers("VOLUNTEER"))
        assert resp.status_code == 200


class TestParseNews:
    def test_parse_creates_completed_record(self, client, seeded, admin):
        resp = client.post(f"{API}/parse-news/{seeded['news_id']}", headers=admin)
        assert resp.status_code == 201
        data = _data(resp)
        assert data["status"] == "COMPLETED"
        assert data["sourceNewsId"] == seeded["news_id"]
        assert data["category"] == "AGRICULTURE"
        assert data["sentiment"] == "NEGATIVE"
        assert data["relevanceScore"] == 82
        assert data["geographicRelevance"] == "DISTRICT"
        assert data["parsedAt"] is not None

    def test_reparse_of_completed_returns_same_record(self, client, seeded, admin):
        first = _data(client.post(f"{API}/parse-news/{seeded['news_id']}", headers=admin))
        resp = client.post(f"{API}/parse-news/{seeded['news_id']}", headers=admin)
        assert resp.status_code == 200
        assert _data(resp)["id"] == first["id"]

        listing = client.get(f"{API}/parsed-news", headers=admin).json()
        assert listing["meta"]["total"] == 1

    def test_global_news_is_visible(self, client, seeded, admin):
        resp = client.post(f"{API}/parse-news/{seeded['global_news_id']}", headers=admin)
        assert resp.status_code == 201

    def test_other_tenants_news_is_404(self, client, seeded, admin):
        resp = client.post(f"{API}/parse-news/{seeded['foreign_news_id']}", headers=admin)
        assert resp.status_code == 404
        assert _error(resp)["code"] == "E3001"

    def test_llm_failure_records_failed_and_returns_502(self, client, seeded, admin):
        app.dependency_overrides[get_parser_llm] = lambda: FakeListChatModel(
            responses=["the model rambled instead of answering"]
        )
        resp = client.post(f"{API}/parse-news/{seeded['news_id']}", headers=admin)
        assert resp.status_code == 502
        assert _error(resp)["code"] == "E5004"

        failed = client.get(f"{API}/parsed-news?status=FAILED", headers=admin).json()
        assert failed["meta"]["total"] == 1
        assert failed["data"][0]["errorMessage"].startswith("News parsing failed")

    def test_failed_record_is_reparsed_in_place(self, client, seeded, admin, parser_llm):
        app.dependency_overrides[get_parser_llm] = lambda: FakeListChatModel(responses=["{oops"])
        client.post(f"{API}/parse-news/{seeded['news_id']}", headers=admin)
        failed_id = client.get(f"{API}/parsed-news", headers=admin).json()["data"][0]["id"]

        app.dependency_overrides[get_parser_llm] = lambda: parser_llm
        resp = client.post(f"{API}/parse-news/{seeded['news_id']}", headers=admin)
        assert resp.status_code == 200
        data = _data(resp)
        assert data["id"] == failed_id
        assert data["status"] == "COMPLETED"
        assert data["errorMessage"] is None

    def test_processing_record_is_conflict(self, client, seeded, db, admin):
        async def _processing(session):
            session.add(
                ParsedNews(
                    tenant_id="tenant-a",
                    source_news_id=seeded["news_id"],
                    original_title="t",
                    title="t",
                    status=ParseStatus.PROCESSING,
                )
            )

        db(_processing)
        resp = client.post(f"{API}/parse-news/{seeded['news_id']}", headers=admin)
        assert resp.status_code == 409
        assert _error(resp)["code"] == "E4004"

    def test_losing_a_concurrent_first_parse_is_conflict(
        self, client, seeded, admin, concurrent_writer
    ):
        async def _other_request(session):
            session.add(
                ParsedNews(
                    tenant_id="tenant-a",
                    source_news_id=seeded["news_id"],
                    original_title="t",
                    title="t",
                    status=ParseStatus.PROCESSING,
                )
            )

        concurrent_writer(_other_request)
        resp = client.post(f"{API}/parse-news/{seeded['news_id']}", headers=admin)
        assert resp.status_code == 409
        assert _error(resp)["code"] == "E4004"

        listing = client.get(f"{API}/parsed-news", headers=admin).json()
        assert listing["meta"]["total"] == 1
        assert listing["data"][0]["status"] == "PROCESSING"


class TestAnalysis:
    def test_analyze_with_election_context(self, client, seeded, make_parsed, admin):
        parsed_id = make_parsed()
        resp = client.post(
            f"{API}/analyze/{parsed_id}",
            json={"electionId": seeded["election_id"]},
            headers=admin,
        )
        assert resp.status_code == 201
        data = _data(resp)
        assert data["status"] == "COMPLETED"
        assert data["sentiment"] == "NEGATIVE"
        assert len(data["keyPoints"]) == 3
        assert data["electionId"] == seeded["election_id"]
        assert data["localContext"]["demographics"]["constituency"] == "Maddur"
        assert len(data["localContext"]["party_context"]["parties"]) == 2
        (category,) = data["localContext"]["caste_analysis"]["categories"]
        assert category["name"] == "OBC"
        assert sorted(category["castes"]) == ["Kuruba", "Vokkaliga"]

    def test_analyze_pending_parsed_news(self, client, make_parsed, admin):
        parsed_id = make_parsed(ParseStatus.PENDING)
        resp = client.post(f"{API}/analyze/{parsed_id}", headers=admin)
        assert resp.status_code == 201
        assert _data(resp)["localContext"]["demographics"] == {}

    def test_failed_parse_cannot_be_analyzed(self, client, make_parsed, admin):
        parsed_id = make_parsed(ParseStatus.FAILED)
        resp = client.post(f"{API}/analyze/{parsed_id}", headers=admin)
        assert resp.status_code == 409
        assert _error(resp)["code"] == "E4004"

    def test_unknown_election_is_404(self, client, make_parsed, admin):
        parsed_id = make_parsed()
        resp = client.post(f"{API}/analyze/{parsed_id}", json={"electionId": "nope"}, headers=admin)
        assert resp.status_code == 404
        assert client.get(f"{API}/analyses", headers=admin).json()["meta"]["total"] == 0

    def test_llm_failure_leaves_failed_record(self, client, make_parsed, admin):
        app.dependency_overrides[get_analyzer_llm] = lambda: FakeListChatModel(
            responses=[json.dumps({"sentiment": "NEGATIVE", "key_points": []})]
        )
        parsed_id = make_parsed()
        resp = client.post(f"{API}/analyze/{parsed_id}", headers=admin)
        assert resp.status_code == 502

        failed = client.get(f"{API}/analyses?status=FAILED", headers=admin).json()
        assert failed["meta"]["total"] == 1
        assert failed["data"][0]["errorMessage"]

    def test_reanalysis_creates_new_record(self, client, make_parsed, admin):
        parsed_id = make_parsed()
        first = _data(client.post(f"{API}/analyze/{parsed_id}", headers=admin))
        second = _data(client.post(f"{API}/analyze/{parsed_id}", headers=admin))
        assert first["id"] != second["id"]
        assert client.get(f"{API}/analyses", headers=admin).json()["meta"]["total"] == 2

    def test_analysis_detail_includes_children(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        client.post(f"{API}/generate-party-lines/{analysis_id}", headers=admin)
        resp = client.get(f"{API}/analyses/{analysis_id}", headers=admin)
        assert resp.status_code == 200
        data = _data(resp)
        assert data["parsedNews"]["status"] == "COMPLETED"
        assert len(data["partyLines"]) == 5
        assert data["actionPlans"] == []


class TestGenerators:
    def test_incomplete_analysis_is_rejected(self, client, make_analysis, admin):
        analysis_id = make_analysis(status=AnalysisStatus.PENDING)
        for stage in ("action-plans", "party-lines", "speech-points"):
            resp = client.post(f"{API}/generate-{stage}/{analysis_id}", headers=admin)
            assert resp.status_code == 409
            assert _error(resp)["code"] == "E4004"

    def test_unknown_or_foreign_analysis_is_404(self, client, make_analysis, admin):
        foreign_id = make_analysis(tenant_id="tenant-b")
        assert client.post(f"{API}/generate-action-plans/missing", headers=admin).status_code == 404
        assert client.post(f"{API}/generate-action-plans/{foreign_id}", headers=admin).status_code == 404

    def test_action_plans_one_per_role(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        resp = client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin)
        assert resp.status_code == 201
        plans = _data(resp)
        assert {p["targetRole"] for p in plans} == LEVELS
        assert all(p["status"] == "DRAFT" for p in plans)
        assert all(p["priority"] == "HIGH" for p in plans)
        assert all(p["batchNo"] == 1 for p in plans)
        by_role = {p["targetRole"]: p for p in plans}
        assert len(by_role["CENTRAL_COMMITTEE"]["actionItems"]) == 3
        assert len(by_role["VOLUNTEER"]["actionItems"]) == 2

    def test_repeated_generation_appends_new_batch(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin)
        second = _data(client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin))
        assert all(p["batchNo"] == 2 for p in second)

        listing = client.get(f"{API}/action-plans?analysisId={analysis_id}", headers=admin).json()
        assert listing["meta"]["total"] == 10

    @staticmethod
    def _claim_first_batch(analysis_id):
        async def _other_request(session):
            session.add(
                ActionPlan(
                    tenant_id="tenant-a",
                    analysis_id=analysis_id,
                    batch_no=1,
                    target_role=OrgLevel.CENTRAL_COMMITTEE,
                    title="Generated by a concurrent request",
                )
            )

        return _other_request

    def test_batch_conflict_retries_with_next_batch(
        self, client, make_analysis, admin, concurrent_writer
    ):
        analysis_id = make_analysis()
        concurrent_writer(self._claim_first_batch(analysis_id))

        resp = client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin)
        assert resp.status_code == 201
        plans = _data(resp)
        assert len(plans) == 5
        assert all(p["batchNo"] == 2 for p in plans)

        listing = client.get(f"{API}/action-plans?analysisId={analysis_id}", headers=admin).json()
        assert listing["meta"]["total"] == 6

    def test_batch_conflict_gives_up_after_max_retries(
        self, client, make_analysis, admin, concurrent_writer, monkeypatch
    ):
        monkeypatch.setattr(get_settings(), "generation_max_retries", 1)
        analysis_id = make_analysis()
        concurrent_writer(self._claim_first_batch(analysis_id))

        resp = client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin)
        assert resp.status_code == 409
        assert _error(resp)["code"] == "E4004"

        listing = client.get(f"{API}/action-plans?analysisId={analysis_id}", headers=admin).json()
        assert listing["meta"]["total"] == 1

    def test_party_lines_are_drafts_with_level_guidance(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        lines = _data(client.post(f"{API}/generate-party-lines/{analysis_id}", headers=admin))
        assert {line["level"] for line in lines} == LEVELS
        assert not any(line["isActive"] for line in lines)
        volunteer = next(line for line in lines if line["level"] == "VOLUNTEER")
        assert volunteer["toneGuidance"] == "Friendly, conversational, relatable"
        assert "Ground Workers" in volunteer["targetAudience"]
        assert any("acknowledge" in dont for dont in volunteer["whatNotToSay"])

    def test_speech_points_for_negative_news_with_figures(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        points = _data(client.post(f"{API}/generate-speech-points/{analysis_id}", headers=admin))
        assert len(points) == 6
        by_type = {p["pointType"]: p for p in points}
        assert by_type["KEY_MESSAGE"]["priority"] == "MUST_MENTION"
        assert by_type["COUNTER_NARRATIVE"]["priority"] == "RECOMMENDED"
        assert "40%" in by_type["FACT_STAT"]["content"]
        assert not any(p["isApproved"] for p in points)

    def test_speech_points_skip_inapplicable_categories(self, client, make_analysis, admin):
        analysis_id = make_analysis(
            sentiment=Sentiment.POSITIVE,
            key_points=["Farmers welcome the package", "Candidate visited villages"],
        )
        points = _data(client.post(f"{API}/generate-speech-points/{analysis_id}", headers=admin))
        assert {p["pointType"] for p in points} == {
            "KEY_MESSAGE",
            "LOCAL_ISSUE",
            "SCHEME_HIGHLIGHT",
            "EMOTIONAL_APPEAL",
        }

    def test_volunteer_cannot_generate(self, client, make_analysis, auth_headers):
        analysis_id = make_analysis()
        resp = client.post(
            f"{API}/generate-action-plans/{analysis_id}", headers=auth_headers("VOLUNTEER")
        )
        assert resp.status_code == 403


class TestApprovals:
    def _plan(self, client, make_analysis, admin) -> dict:
        analysis_id = make_analysis()
        return _data(client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin))[0]

    def test_approve_action_plan(self, client, make_analysis, admin):
        plan = self._plan(client, make_analysis, admin)
        resp = client.patch(f"{API}/action-plans/{plan['id']}/approve", headers=admin)
        assert resp.status_code == 200
        data = _data(resp)
        assert data["status"] == "APPROVED"
        assert data["approvedBy"] == "user-1"
        assert data["approvedAt"] is not None

    def test_reapproval_is_a_noop(self, client, make_analysis, admin, auth_headers):
        plan = self._plan(client, make_analysis, admin)
        first = _data(client.patch(f"{API}/action-plans/{plan['id']}/approve", headers=admin))
        again = _data(
            client.patch(
                f"{API}/action-plans/{plan['id']}/approve",
                headers=auth_headers(user_id="user-2"),
            )
        )
        assert again["approvedBy"] == "user-1"
        assert again["approvedAt"] == first["approvedAt"]

    def test_campaign_manager_cannot_approve(self, client, make_analysis, admin, auth_headers):
        plan = self._plan(client, make_analysis, admin)
        resp = client.patch(
            f"{API}/action-plans/{plan['id']}/approve", headers=auth_headers("CAMPAIGN_MANAGER")
        )
        assert resp.status_code == 403

    def test_status_lifecycle(self, client, make_analysis, admin):
        plan = self._plan(client, make_analysis, admin)
        url = f"{API}/action-plans/{plan['id']}"
        client.patch(f"{url}/approve", headers=admin)

        resp = client.patch(f"{url}/status", json={"status": "IN_PROGRESS"}, headers=admin)
        assert _data(resp)["status"] == "IN_PROGRESS"

        resp = client.patch(f"{url}/approve", headers=admin)
        assert resp.status_code == 409

        resp = client.patch(f"{url}/status", json={"status": "COMPLETED"}, headers=admin)
        assert _data(resp)["status"] == "COMPLETED"

        resp = client.patch(f"{url}/status", json={"status": "CANCELLED"}, headers=admin)
        assert resp.status_code == 409

    def test_draft_cannot_skip_to_completed(self, client, make_analysis, admin):
        plan = self._plan(client, make_analysis, admin)
        resp = client.patch(
            f"{API}/action-plans/{plan['id']}/status", json={"status": "COMPLETED"}, headers=admin
        )
        assert resp.status_code == 409

    def test_unknown_status_is_422(self, client, make_analysis, admin):
        plan = self._plan(client, make_analysis, admin)
        resp = client.patch(
            f"{API}/action-plans/{plan['id']}/status", json={"status": "BOGUS"}, headers=admin
        )
        assert resp.status_code == 422
        assert _error(resp)["code"] == "E2002"

    def test_publish_only_touches_one_party_line(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        lines = _data(client.post(f"{API}/generate-party-lines/{analysis_id}", headers=admin))
        published = _data(client.patch(f"{API}/party-lines/{lines[0]['id']}/publish", headers=admin))
        assert published["isActive"] is True
        assert published["publishedAt"] is not None

        active = client.get(f"{API}/party-lines?isActive=true", headers=admin).json()
        assert active["meta"]["total"] == 1
        inactive = client.get(f"{API}/party-lines?isActive=false", headers=admin).json()
        assert inactive["meta"]["total"] == 4

    def test_approve_speech_point(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        point = _data(client.post(f"{API}/generate-speech-points/{analysis_id}", headers=admin))[0]
        data = _data(client.patch(f"{API}/speech-points/{point['id']}/approve", headers=admin))
        assert data["isApproved"] is True
        assert data["approvedBy"] == "user-1"

    def test_republish_keeps_first_publication(self, client, make_analysis, admin, auth_headers):
        analysis_id = make_analysis()
        line = _data(client.post(f"{API}/generate-party-lines/{analysis_id}", headers=admin))[0]
        url = f"{API}/party-lines/{line['id']}/publish"
        first = _data(client.patch(url, headers=admin))
        again = _data(client.patch(url, headers=auth_headers(user_id="user-2")))
        assert again["isActive"] is True
        assert again["approvedBy"] == "user-1"
        assert again["publishedAt"] == first["publishedAt"]

    def test_speech_point_reapproval_is_a_noop(self, client, make_analysis, admin, auth_headers):
        analysis_id = make_analysis()
        point = _data(client.post(f"{API}/generate-speech-points/{analysis_id}", headers=admin))[0]
        url = f"{API}/speech-points/{point['id']}/approve"
        first = _data(client.patch(url, headers=admin))
        again = _data(client.patch(url, headers=auth_headers(user_id="user-2")))
        assert again["isApproved"] is True
        assert again["approvedBy"] == "user-1"
        assert again["approvedAt"] == first["approvedAt"]

    def test_reloaded_timestamps_keep_utc_offset(self, client, make_analysis, admin):
        plan = self._plan(client, make_analysis, admin)
        approved = _data(client.patch(f"{API}/action-plans/{plan['id']}/approve", headers=admin))
        listed = client.get(f"{API}/action-plans?status=APPROVED", headers=admin).json()["data"][0]
        assert listed["approvedAt"] == approved["approvedAt"]
        assert listed["approvedAt"].endswith("Z")
        assert listed["createdAt"].endswith("Z")

    def test_missing_row_is_404(self, client, admin):
        assert client.patch(f"{API}/party-lines/missing/publish", headers=admin).status_code == 404


class TestBroadcasts:
    def _lines(self, client, make_analysis, admin) -> list[dict]:
        analysis_id = make_analysis()
        return _data(client.post(f"{API}/generate-party-lines/{analysis_id}", headers=admin))

    def _published(self, client, make_analysis, admin) -> dict:
        line = self._lines(client, make_analysis, admin)[0]
        return _data(client.patch(f"{API}/party-lines/{line['id']}/publish", headers=admin))

    def test_publish_then_broadcast_then_send(self, client, make_analysis, admin, gateway):
        lines = self._lines(client, make_analysis, admin)
        published = _data(client.patch(f"{API}/party-lines/{lines[0]['id']}/publish", headers=admin))

        resp = client.post(f"{API}/broadcasts", json={"partyLineId": lines[1]["id"]}, headers=admin)
        assert resp.status_code == 400
        assert _error(resp)["code"] == "E2001"

        resp = client.post(f"{API}/broadcasts", json={"partyLineId": published["id"]}, headers=admin)
        assert resp.status_code == 201
        broadcast = _data(resp)
        assert broadcast["status"] == "PENDING"
        assert broadcast["channel"] == "APP"
        assert broadcast["targetLevel"] == published["level"]
        assert broadcast["message"] == "\n\n".join(published["keyMessages"])

        sent = _data(client.post(f"{API}/broadcasts/{broadcast['id']}/send", headers=admin))
        assert sent["status"] == "SENT"
        assert sent["sentAt"] is not None
        assert sent["sentBy"] == "user-1"
        assert gateway["requests"] == []

    def test_second_send_is_conflict(self, client, make_analysis, admin):
        line = self._published(client, make_analysis, admin)
        broadcast = _data(client.post(f"{API}/broadcasts", json={"partyLineId": line["id"]}, headers=admin))
        client.post(f"{API}/broadcasts/{broadcast['id']}/send", headers=admin)
        resp = client.post(f"{API}/broadcasts/{broadcast['id']}/send", headers=admin)
        assert resp.status_code == 409

    def test_future_schedule_is_scheduled_and_sendable(self, client, make_analysis, admin):
        line = self._published(client, make_analysis, admin)
        when = (datetime.now(UTC) + timedelta(days=1)).isoformat()
        broadcast = _data(
            client.post(
                f"{API}/broadcasts",
                json={"partyLineId": line["id"], "scheduledAt": when, "priority": "HIGH"},
                headers=admin,
            )
        )
        assert broadcast["status"] == "SCHEDULED"
        assert broadcast["priority"] == "HIGH"
        sent = _data(client.post(f"{API}/broadcasts/{broadcast['id']}/send", headers=admin))
        assert sent["status"] == "SENT"

    def test_sms_goes_through_gateway(self, client, make_analysis, admin, gateway):
        line = self._published(client, make_analysis, admin)
        broadcast = _data(
            client.post(
                f"{API}/broadcasts",
                json={
                    "partyLineId": line["id"],
                    "channel": "SMS",
                    "targetLevel": "VOLUNTEER",
                    "message": "Meet at the panchayat office at 6pm",
                    "targetAreas": ["Ward 4"],
                },
                headers=admin,
            )
        )
        resp = client.post(f"{API}/broadcasts/{broadcast['id']}/send", headers=admin)
        assert resp.status_code == 200
        assert len(gateway["requests"]) == 1
        sent = gateway["requests"][0]
        assert sent["channel"] == "SMS"
        assert sent["broadcastId"] == broadcast["id"]
        assert sent["targetAreas"] == ["Ward 4"]

    def test_gateway_failure_leaves_broadcast_unsent(self, client, make_analysis, admin, gateway):
        line = self._published(client, make_analysis, admin)
        broadcast = _data(
            client.post(
                f"{API}/broadcasts", json={"partyLineId": line["id"], "channel": "WHATSAPP"}, headers=admin
            )
        )
        gateway["status"] = 500
        resp = client.post(f"{API}/broadcasts/{broadcast['id']}/send", headers=admin)
        assert resp.status_code == 502
        assert _error(resp)["code"] == "E5004"

        pending = client.get(f"{API}/broadcasts?status=PENDING", headers=admin).json()
        assert pending["meta"]["total"] == 1

    def test_campaign_manager_creates_but_cannot_send(self, client, make_analysis, admin, auth_headers):
        line = self._published(client, make_analysis, admin)
        manager = auth_headers("CAMPAIGN_MANAGER")
        resp = client.post(f"{API}/broadcasts", json={"partyLineId": line["id"]}, headers=manager)
        assert resp.status_code == 201
        resp = client.post(f"{API}/broadcasts/{_data(resp)['id']}/send", headers=manager)
        assert resp.status_code == 403

    def test_unknown_party_line_is_404(self, client, admin):
        resp = client.post(f"{API}/broadcasts", json={"partyLineId": "missing"}, headers=admin)
        assert resp.status_code == 404

    def test_list_filters(self, client, make_analysis, admin):
        line = self._published(client, make_analysis, admin)
        for channel in ("APP", "SMS", "SMS"):
            client.post(f"{API}/broadcasts", json={"partyLineId": line["id"], "channel": channel}, headers=admin)
        listing = client.get(f"{API}/broadcasts?channel=SMS", headers=admin).json()
        assert listing["meta"]["total"] == 2
        level = line["level"]
        assert client.get(f"{API}/broadcasts?targetLevel={level}", headers=admin).json()["meta"]["total"] == 3


class TestCampaignSpeeches:
    def test_requires_approved_speech_point(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        point = _data(client.post(f"{API}/generate-speech-points/{analysis_id}", headers=admin))[0]

        resp = client.post(f"{API}/campaign-speeches", json={"speechPointId": point["id"]}, headers=admin)
        assert resp.status_code == 400
        assert _error(resp)["code"] == "E2001"

        client.patch(f"{API}/speech-points/{point['id']}/approve", headers=admin)
        resp = client.post(
            f"{API}/campaign-speeches",
            json={
                "speechPointId": point["id"],
                "speechType": "DOOR_TO_DOOR",
                "venue": "Ward 4",
                "targetAudience": ["Farmers"],
                "estimatedAudienceSize": 300,
            },
            headers=admin,
        )
        assert resp.status_code == 201
        speech = _data(resp)
        assert speech["status"] == "SCHEDULED"
        assert speech["speechType"] == "DOOR_TO_DOOR"

        approved = client.get(f"{API}/speech-points?isApproved=true", headers=admin).json()
        assert approved["data"][0]["usedInCampaigns"] == 1

        listing = client.get(f"{API}/campaign-speeches?speechType=DOOR_TO_DOOR", headers=admin).json()
        assert listing["meta"]["total"] == 1


class TestDashboard:
    def test_counts_are_live(self, client, make_analysis, admin, auth_headers):
        analysis_id = make_analysis()
        make_analysis(status=AnalysisStatus.FAILED)

        plans = _data(client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin))
        client.patch(f"{API}/action-plans/{plans[0]['id']}/approve", headers=admin)
        lines = _data(client.post(f"{API}/generate-party-lines/{analysis_id}", headers=admin))
        client.patch(f"{API}/party-lines/{lines[0]['id']}/publish", headers=admin)
        broadcast = _data(client.post(f"{API}/broadcasts", json={"partyLineId": lines[0]["id"]}, headers=admin))

        before = _data(client.get(f"{API}/dashboard", headers=admin))
        assert before["stats"]["broadcasts"] == {"total": 1, "sent": 0}

        client.post(f"{API}/broadcasts/{broadcast['id']}/send", headers=admin)
        data = _data(client.get(f"{API}/dashboard", headers=admin))
        stats = data["stats"]
        assert stats["parsedNews"]["total"] == 2
        assert stats["analyses"] == {"total": 2, "pending": 0, "completed": 1, "failed": 1}
        assert stats["actionPlans"] == {"total": 5, "approved": 1}
        assert stats["partyLines"] == {"total": 5, "active": 1}
        assert stats["speechPoints"] == {"total": 0, "approved": 0}
        assert stats["broadcasts"] == {"total": 1, "sent": 1}
        assert len(data["recentParsedNews"]) == 2
        assert len(data["recentAnalyses"]) == 2
        assert len(data["recentActionPlans"]) == 5

        other = _data(client.get(f"{API}/dashboard", headers=auth_headers(tenant_id="tenant-b")))
        assert other["stats"]["actionPlans"]["total"] == 0


class TestListing:
    def test_pagination_meta(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin)
        client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin)

        body = client.get(f"{API}/action-plans?page=2&limit=3", headers=admin).json()
        assert len(body["data"]) == 3
        assert body["meta"] == {"page": 2, "limit": 3, "total": 10, "totalPages": 4}

    def test_limit_is_capped(self, client, admin):
        body = client.get(f"{API}/action-plans?limit=500", headers=admin).json()
        assert body["meta"]["limit"] == 100

    def test_page_must_be_positive(self, client, admin):
        resp = client.get(f"{API}/action-plans?page=0", headers=admin)
        assert resp.status_code == 422

    def test_role_filter(self, client, make_analysis, admin):
        analysis_id = make_analysis()
        client.post(f"{API}/generate-action-plans/{analysis_id}", headers=admin)
        body = client.get(f"{API}/action-plans?targetRole=VOLUNTEER", headers=admin).json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["targetRole"] == "VOLUNTEER"

    def test_tenants_are_isolated(self, client, make_analysis, admin, auth_headers, db):
        make_analysis()

        async def _count(session):
            return await session.scalar(select(func.count()).select_from(NewsAnalysis))

        assert db(_count) == 1
        other = client.get(f"{API}/analyses", headers=auth_headers(tenant_id="tenant-b")).json()
        assert other["meta"]["total"] == 0
        assert client.get(f"{API}/analyses", headers=admin).json()["meta"]["total"] == 1
