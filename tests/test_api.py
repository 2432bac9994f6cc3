"""
Test suite for the Lightboard API.

Tests cover:
  - Authentication flows (login, refresh, token validation)
  - RBAC enforcement (editor vs admin, operator management)
  - Dashboard content: companies, jobs, media, stories, proof stats
  - Traffic light and the public landing page in each phase
  - View recording and the analytics summary / CSV export

Run with: pytest tests/ -v
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import text

from conftest import TEST_PASSWORD
from lightboard.core.errors import DataAccessError
from lightboard.models.company import ApplicationMethod, Job, JobStatus, JobType
from lightboard.models.content import CommunityStory
from lightboard.models.view_event import ViewEvent


# ── Auth Tests ─────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
class TestLogin:
    async def test_login_returns_token_pair(self, client: AsyncClient, editor):
        resp = await client.post("/api/v1/auth/login", json={
            "email": "editor@lightboard.co.za",
            "password": TEST_PASSWORD,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    async def test_wrong_password_returns_401(self, client: AsyncClient, editor):
        resp = await client.post("/api/v1/auth/login", json={
            "email": "editor@lightboard.co.za",
            "password": "WrongPassword1",
        })
        assert resp.status_code == 401

    async def test_nonexistent_email_returns_401(self, client: AsyncClient):
        resp = await client.post("/api/v1/auth/login", json={
            "email": "ghost@nowhere.com",
            "password": TEST_PASSWORD,
        })
        assert resp.status_code == 401

    async def test_get_me_returns_profile(self, client: AsyncClient, editor, editor_headers):
        resp = await client.get("/api/v1/auth/me", headers=editor_headers)
        assert resp.status_code == 200
        assert resp.json()["email"] == "editor@lightboard.co.za"
        assert resp.json()["role"] == "editor"

    async def test_missing_token_rejected(self, client: AsyncClient):
        resp = await client.get("/api/v1/auth/me")
        assert resp.status_code in (401, 403)

    async def test_refresh_issues_new_pair(self, client: AsyncClient, editor):
        login = await client.post("/api/v1/auth/login", json={
            "email": "editor@lightboard.co.za",
            "password": TEST_PASSWORD,
        })
        resp = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": login.json()["refresh_token"]}
        )
        assert resp.status_code == 200
        assert resp.json()["access_token"] != login.json()["access_token"]

    async def test_refresh_token_cannot_access_api(self, client: AsyncClient, editor):
        login = await client.post("/api/v1/auth/login", json={
            "email": "editor@lightboard.co.za",
            "password": TEST_PASSWORD,
        })
        resp = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {login.json()['refresh_token']}"},
        )
        assert resp.status_code == 401

    async def test_access_token_cannot_refresh(self, client: AsyncClient, editor):
        login = await client.post("/api/v1/auth/login", json={
            "email": "editor@lightboard.co.za",
            "password": TEST_PASSWORD,
        })
        resp = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": login.json()["access_token"]}
        )
        assert resp.status_code == 400


# ── RBAC Tests ────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
class TestRBAC:
    async def test_editor_cannot_list_operators(self, client: AsyncClient, editor_headers):
        resp = await client.get("/api/v1/operators/", headers=editor_headers)
        assert resp.status_code == 403

    async def test_admin_can_list_operators(self, client: AsyncClient, admin_headers):
        resp = await client.get("/api/v1/operators/", headers=admin_headers)
        assert resp.status_code == 200
        assert [o["role"] for o in resp.json()] == ["admin"]

    async def test_admin_creates_editor(self, client: AsyncClient, admin_headers):
        resp = await client.post(
            "/api/v1/operators/",
            json={"email": "new@lightboard.co.za", "password": "SecurePass1", "full_name": "New Editor"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["role"] == "editor"

    async def test_weak_password_rejected(self, client: AsyncClient, admin_headers):
        resp = await client.post(
            "/api/v1/operators/",
            json={"email": "weak@lightboard.co.za", "password": "weakpass", "full_name": "Weak"},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_duplicate_email_rejected(self, client: AsyncClient, admin_headers, editor):
        resp = await client.post(
            "/api/v1/operators/",
            json={"email": "editor@lightboard.co.za", "password": "SecurePass1", "full_name": "Dup"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    async def test_admin_promotes_editor(self, client: AsyncClient, admin_headers, editor):
        resp = await client.put(
            f"/api/v1/operators/{editor.id}/role",
            json={"role": "admin"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "admin"

    async def test_admin_cannot_deactivate_self(self, client: AsyncClient, admin, admin_headers):
        resp = await client.delete(f"/api/v1/operators/{admin.id}", headers=admin_headers)
        assert resp.status_code == 400

    async def test_deactivated_operator_cannot_login(self, client: AsyncClient, admin_headers, editor):
        resp = await client.delete(f"/api/v1/operators/{editor.id}", headers=admin_headers)
        assert resp.status_code == 204

        login = await client.post("/api/v1/auth/login", json={
            "email": "editor@lightboard.co.za",
            "password": TEST_PASSWORD,
        })
        assert login.status_code == 401

    async def test_anonymous_cannot_manage_content(self, client: AsyncClient):
        resp = await client.post("/api/v1/companies/", json={"name": "Acme"})
        assert resp.status_code in (401, 403)


# ── Companies and jobs ────────────────────────────────────────────────────────
def _job_body(company_id: str, **overrides) -> dict:
    body = {
        "company_id": company_id,
        "title": "Warehouse Assistant",
        "location": "Durban",
        "application_method": "email",
        "contact_info": "jobs@acme.co.za",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
class TestCompaniesAndJobs:
    async def test_create_and_list_companies(self, client: AsyncClient, editor_headers):
        resp = await client.post(
            "/api/v1/companies/", json={"name": "Globex", "details": "Logistics"}, headers=editor_headers
        )
        assert resp.status_code == 201

        listing = await client.get("/api/v1/companies/", headers=editor_headers)
        assert [c["name"] for c in listing.json()] == ["Globex"]

    async def test_delete_missing_company_returns_404(self, client: AsyncClient, editor_headers):
        resp = await client.delete("/api/v1/companies/nope", headers=editor_headers)
        assert resp.status_code == 404

    async def test_new_job_is_pending_with_contact_link(self, client: AsyncClient, editor_headers, company):
        resp = await client.post("/api/v1/jobs/", json=_job_body(company.id), headers=editor_headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "pending"
        assert data["company_name"] == "Acme"
        assert data["contact_link"] == "mailto:jobs@acme.co.za"

    async def test_job_for_missing_company_returns_404(self, client: AsyncClient, editor_headers):
        resp = await client.post("/api/v1/jobs/", json=_job_body("missing"), headers=editor_headers)
        assert resp.status_code == 404

    async def test_job_lifecycle(self, client: AsyncClient, editor_headers, company):
        created = await client.post(
            "/api/v1/jobs/",
            json=_job_body(company.id, application_method="whatsapp", contact_info="+27 82 123 4567"),
            headers=editor_headers,
        )
        job_id = created.json()["id"]
        assert created.json()["contact_link"] == "https://wa.me/27821234567"

        approved = await client.post(f"/api/v1/jobs/{job_id}/approve", headers=editor_headers)
        assert approved.json()["status"] == "approved"

        counts = await client.put(
            f"/api/v1/jobs/{job_id}/counts",
            json={"applications_count": 12, "interviews_count": 3},
            headers=editor_headers,
        )
        assert counts.json()["applications_count"] == 12
        assert counts.json()["interviews_count"] == 3
        assert counts.json()["hires_count"] == 0

        filled = await client.post(f"/api/v1/jobs/{job_id}/fill", headers=editor_headers)
        assert filled.json()["status"] == "filled"
        assert filled.json()["filled_at"] is not None

        listing = await client.get("/api/v1/jobs/", params={"status": "filled"}, headers=editor_headers)
        assert [j["id"] for j in listing.json()] == [job_id]

        deleted = await client.delete(f"/api/v1/jobs/{job_id}", headers=editor_headers)
        assert deleted.status_code == 204

    async def test_deleting_company_removes_its_jobs(self, client: AsyncClient, editor_headers, company):
        await client.post("/api/v1/jobs/", json=_job_body(company.id), headers=editor_headers)

        resp = await client.delete(f"/api/v1/companies/{company.id}", headers=editor_headers)
        assert resp.status_code == 204

        listing = await client.get("/api/v1/jobs/", headers=editor_headers)
        assert listing.json() == []


# ── Media ──────────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
class TestMedia:
    async def test_new_media_is_unapproved(self, client: AsyncClient, editor_headers, company):
        resp = await client.post(
            "/api/v1/media/",
            json={
                "company_id": company.id,
                "content_type": "video",
                "description": "Day in the life",
                "video_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            },
            headers=editor_headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["approved"] is False
        assert data["embed_url"] == "https://www.youtube.com/embed/dQw4w9WgXcQ"
        assert data["company_name"] == "Acme"

    async def test_video_without_source_rejected(self, client: AsyncClient, editor_headers, company):
        resp = await client.post(
            "/api/v1/media/",
            json={"company_id": company.id, "content_type": "video", "description": "Nothing"},
            headers=editor_headers,
        )
        assert resp.status_code == 422

    async def test_approve_and_reject(self, client: AsyncClient, editor_headers, video):
        rejected = await client.post(f"/api/v1/media/{video.id}/reject", headers=editor_headers)
        assert rejected.json()["approved"] is False

        pending = await client.get("/api/v1/media/", params={"approved": "false"}, headers=editor_headers)
        assert [m["id"] for m in pending.json()] == [video.id]

        approved = await client.post(f"/api/v1/media/{video.id}/approve", headers=editor_headers)
        assert approved.json()["approved"] is True

    async def test_upload_stores_file(self, client: AsyncClient, editor_headers):
        resp = await client.post(
            "/api/v1/media/upload",
            files={"file": ("promo.mp4", b"\x00" * 64, "video/mp4")},
            data={"content_type": "video"},
            headers=editor_headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["path"].startswith("videos/")
        assert data["path"].endswith(".mp4")
        assert data["url"] == f"http://test/media/{data['path']}"
        assert data["size"] == 64

    async def test_oversized_upload_rejected(self, client: AsyncClient, editor_headers):
        resp = await client.post(
            "/api/v1/media/upload",
            files={"file": ("big.png", b"\x00" * 2048, "image/png")},
            data={"content_type": "image"},
            headers=editor_headers,
        )
        assert resp.status_code == 400

    async def test_delete_missing_media_returns_404(self, client: AsyncClient, editor_headers):
        resp = await client.delete("/api/v1/media/nope", headers=editor_headers)
        assert resp.status_code == 404


# ── Stories and proof stats ───────────────────────────────────────────────────
@pytest.mark.asyncio
class TestStories:
    async def test_story_crud(self, client: AsyncClient, editor_headers):
        created = await client.post(
            "/api/v1/stories/",
            json={"title": "Hired in a week", "content": "Thandi found work through the board."},
            headers=editor_headers,
        )
        assert created.status_code == 201
        story_id = created.json()["id"]
        assert created.json()["published"] is True

        patched = await client.patch(
            f"/api/v1/stories/{story_id}", json={"title": "Hired in five days"}, headers=editor_headers
        )
        assert patched.json()["title"] == "Hired in five days"
        assert patched.json()["content"] == "Thandi found work through the board."

        unpublished = await client.post(
            f"/api/v1/stories/{story_id}/publish", json={"published": False}, headers=editor_headers
        )
        assert unpublished.json()["published"] is False

        deleted = await client.delete(f"/api/v1/stories/{story_id}", headers=editor_headers)
        assert deleted.status_code == 204

    async def test_null_title_rejected(self, client: AsyncClient, editor_headers, db_session):
        story = CommunityStory(title="Kept", content="Body")
        db_session.add(story)
        await db_session.commit()

        resp = await client.patch(
            f"/api/v1/stories/{story.id}", json={"title": None}, headers=editor_headers
        )
        assert resp.status_code == 422

    async def test_proof_stats_default_and_update(self, client: AsyncClient, editor_headers):
        initial = await client.get("/api/v1/proof-stats")
        assert initial.status_code == 200
        assert initial.json()["total_companies"] == 0

        resp = await client.put(
            "/api/v1/proof-stats",
            json={"total_companies": 14, "total_applications": 320, "total_interviews": 41},
            headers=editor_headers,
        )
        assert resp.status_code == 200

        current = await client.get("/api/v1/proof-stats")
        assert current.json()["total_applications"] == 320


# ── Traffic light and public page ─────────────────────────────────────────────
@pytest.mark.asyncio
class TestPublicPage:
    async def test_light_defaults_to_red(self, client: AsyncClient):
        resp = await client.get("/api/v1/traffic-light")
        assert resp.json() == {"state": "red"}

    async def test_anonymous_cannot_change_light(self, client: AsyncClient):
        resp = await client.put("/api/v1/traffic-light", json={"state": "green"})
        assert resp.status_code in (401, 403)

    async def test_red_shows_stats_and_published_stories(self, client: AsyncClient, db_session):
        db_session.add_all([
            CommunityStory(title="Published", content="Shown", published=True),
            CommunityStory(title="Draft", content="Hidden", published=False),
        ])
        await db_session.commit()

        page = (await client.get("/api/v1/public/page")).json()
        assert page["state"] == "red"
        assert page["proof_stats"]["total_companies"] == 0
        assert [s["title"] for s in page["stories"]] == ["Published"]
        assert page["media"] == []
        assert page["jobs"] == []

    async def test_orange_shows_approved_media(self, client: AsyncClient, editor_headers, video):
        resp = await client.put("/api/v1/traffic-light", json={"state": "orange"}, headers=editor_headers)
        assert resp.json() == {"state": "orange"}

        page = (await client.get("/api/v1/public/page")).json()
        assert page["state"] == "orange"
        assert [m["id"] for m in page["media"]] == [video.id]
        assert page["media"][0]["embed_url"] == "https://www.youtube.com/embed/dQw4w9WgXcQ"
        assert page["media"][0]["description_segments"] == [{"type": "text", "value": "Promo A"}]
        assert page["stories"] == []

    async def test_green_splits_jobs_and_learnerships(
        self, client: AsyncClient, editor_headers, db_session, company
    ):
        common = {
            "company_id": company.id,
            "location": "Cape Town",
            "application_method": ApplicationMethod.EXTERNAL_LINK,
            "contact_info": "acme.co.za/careers",
        }
        db_session.add_all([
            Job(title="Driver", job_type=JobType.JOB, status=JobStatus.APPROVED, **common),
            Job(title="Apprentice", job_type=JobType.LEARNERSHIP, status=JobStatus.APPROVED, **common),
            Job(title="Unreviewed", job_type=JobType.JOB, status=JobStatus.PENDING, **common),
        ])
        await db_session.commit()

        await client.put("/api/v1/traffic-light", json={"state": "green"}, headers=editor_headers)
        page = (await client.get("/api/v1/public/page")).json()

        assert [j["title"] for j in page["jobs"]] == ["Driver"]
        assert [j["title"] for j in page["learnerships"]] == ["Apprentice"]
        assert page["jobs"][0]["contact_link"] == "https://acme.co.za/careers"


# ── View recording and analytics ──────────────────────────────────────────────
@pytest.mark.asyncio
class TestAnalytics:
    async def test_view_is_classified(self, client: AsyncClient, video):
        short = await client.post("/api/v1/public/views", json={"item_id": video.id, "duration_seconds": 4})
        long = await client.post("/api/v1/public/views", json={"item_id": video.id, "duration_seconds": 5})

        assert short.status_code == 202
        assert short.json()["recorded"] is True
        assert short.json()["view_type"] == "visit"
        assert long.json()["view_type"] == "watch"

    async def test_negative_duration_rejected(self, client: AsyncClient, video):
        resp = await client.post("/api/v1/public/views", json={"item_id": video.id, "duration_seconds": -1})
        assert resp.status_code == 422

    async def test_summary_requires_auth(self, client: AsyncClient):
        resp = await client.get("/api/v1/analytics/summary")
        assert resp.status_code in (401, 403)

    async def test_summary_of_recorded_views(self, client: AsyncClient, editor_headers, video):
        for seconds in (3, 4, 12):
            await client.post(
                "/api/v1/public/views",
                json={"item_id": video.id, "duration_seconds": seconds},
                headers={"User-Agent": "UA1"},
            )

        resp = await client.get("/api/v1/analytics/summary", headers=editor_headers)
        assert resp.status_code == 200
        summary = resp.json()["summary"]
        assert summary["total_visits"] == 2
        assert summary["total_watches"] == 1
        assert summary["total_views"] == 3
        assert summary["avg_duration_seconds"] == 6.3
        assert summary["by_item"][video.id] == {
            "title": "Promo A",
            "owner_name": "Acme",
            "visit_count": 2,
            "watch_count": 1,
        }
        assert len(resp.json()["events"]) == 3

    async def test_explicit_window_and_timezone(self, client: AsyncClient, editor_headers, db_session, video):
        db_session.add(ViewEvent(
            item_id=video.id,
            view_type="watch",
            duration_seconds=30,
            created_at=datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc),
        ))
        await db_session.commit()

        resp = await client.get(
            "/api/v1/analytics/summary",
            params={"start": "2024-01-01T00:00:00Z", "end": "2024-01-31T00:00:00Z", "tz": "Asia/Tokyo"},
            headers=editor_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["summary"]["by_date"] == [
            {"date": "2024-01-02", "visit_count": 0, "watch_count": 1}
        ]

    async def test_unknown_timezone_rejected(self, client: AsyncClient, editor_headers):
        resp = await client.get(
            "/api/v1/analytics/summary", params={"tz": "Mars/Olympus"}, headers=editor_headers
        )
        assert resp.status_code == 422

    async def test_store_failure_returns_503(self, client: AsyncClient, editor_headers, monkeypatch):
        async def unavailable(*args, **kwargs):
            raise DataAccessError("Could not load view events")

        monkeypatch.setattr("lightboard.routers.analytics.fetch_and_summarize", unavailable)
        resp = await client.get("/api/v1/analytics/summary", headers=editor_headers)
        assert resp.status_code == 503
        assert resp.json()["events"] == []
        assert resp.json()["summary"] is None

    async def test_malformed_stored_row_returns_503(self, client: AsyncClient, editor_headers, db_session, video):
        await db_session.execute(text("PRAGMA ignore_check_constraints = ON"))
        db_session.add(ViewEvent(
            item_id=video.id,
            view_type="visit",
            duration_seconds=-3,
            created_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        ))
        await db_session.commit()

        resp = await client.get("/api/v1/analytics/summary", headers=editor_headers)
        assert resp.status_code == 503
        assert resp.json()["events"] == []
        assert resp.json()["summary"] is None

    async def test_export_csv(self, client: AsyncClient, editor_headers, db_session, video):
        db_session.add(ViewEvent(
            item_id=video.id,
            view_type="watch",
            duration_seconds=12,
            user_agent="UA1",
            created_at=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
        ))
        await db_session.commit()

        resp = await client.get(
            "/api/v1/analytics/export",
            params={"start": "2024-01-01T00:00:00Z", "end": "2024-01-31T00:00:00Z"},
            headers=editor_headers,
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.headers["content-disposition"] == (
            "attachment; filename=video-analytics-2024-01-01-to-2024-01-31.csv"
        )
        assert resp.text.split("\n") == [
            "Date,Video,Company,View Type,Duration (seconds),User Agent",
            '"2024-01-01 10:00:00","Promo A","Acme","Video Watch (5s+)","12","UA1"',
        ]

    async def test_export_of_empty_window_is_empty(self, client: AsyncClient, editor_headers):
        end = datetime.now(timezone.utc)
        resp = await client.get(
            "/api/v1/analytics/export",
            params={"start": (end - timedelta(days=1)).isoformat(), "end": end.isoformat()},
            headers=editor_headers,
        )
        assert resp.status_code == 200
        assert resp.content == b""


# ── Health check ────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
class TestHealth:
    async def test_liveness(self, client: AsyncClient):
        resp = await client.get("/health/live")
        assert resp.status_code == 200

    async def test_readiness(self, client: AsyncClient):
        resp = await client.get("/health/ready")
        assert resp.json()["status"] == "ready"

    async def test_full_health(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
        assert resp.json()["live_subscribers"] == 0
