"""
Tests for API endpoints.
"""
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.caption import Caption, CaptionStatus
from app.services.caption_service import CaptionService


class TestRootEndpoints:

    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Control Tower API"
        assert data["environment"] == "test"

    @pytest.mark.asyncio
    async def test_metrics(self, client: AsyncClient):
        await client.get("/")
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    @pytest.mark.asyncio
    async def test_requires_authentication(self, db_session: AsyncSession):
        from app.main import app
        from app.database import get_db

        async def override_get_db():
            yield db_session

        app.dependency_overrides[get_db] = override_get_db
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                response = await ac.get("/api/captions")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code in (401, 403)


class TestMediaEndpoints:
    """Tests for the upload session endpoints."""

    @pytest.mark.asyncio
    async def test_request_and_finalize(self, client: AsyncClient, test_dataset):
        response = await client.post("/api/media/request-upload", json={
            "dataset_id": test_dataset.id,
            "file_name": "Cat.JPG",
            "mime_type": "image/jpeg",
            "size": 2048,
        })

        assert response.status_code == 201
        data = response.json()
        assert data["asset"]["status"] == "pending_upload"
        assert data["asset"]["storage_key"].endswith("-cat.jpg")
        assert data["upload"]["headers"] == {"Content-Type": "image/jpeg"}
        assert "X-Amz-Signature=" in data["upload"]["url"]

        response = await client.post("/api/media/finalize", json={
            "asset_id": data["asset"]["id"],
            "width": 640,
            "height": 480,
        })

        assert response.status_code == 200
        assert response.json()["status"] == "uploaded"
        assert response.json()["width"] == 640

    @pytest.mark.asyncio
    async def test_finalize_cannot_move_backward(self, client: AsyncClient, test_dataset):
        response = await client.post("/api/media/request-upload", json={
            "dataset_id": test_dataset.id,
            "file_name": "cat.jpg",
            "size": 1,
        })
        asset_id = response.json()["asset"]["id"]

        response = await client.post("/api/media/finalize", json={"asset_id": asset_id, "status": "pending_upload"})
        assert response.status_code == 422

        response = await client.post("/api/media/finalize", json={"asset_id": asset_id, "status": "failed"})
        assert response.json()["status"] == "failed"

        response = await client.post("/api/media/finalize", json={"asset_id": asset_id})
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_request_upload_unknown_dataset(self, client: AsyncClient):
        response = await client.post("/api/media/request-upload", json={
            "dataset_id": 999,
            "file_name": "cat.jpg",
            "size": 1,
        })

        assert response.status_code == 404
        assert response.json()["detail"] == "Dataset not found"

    @pytest.mark.asyncio
    async def test_request_upload_validation(self, client: AsyncClient, test_dataset):
        response = await client.post("/api/media/request-upload", json={
            "dataset_id": test_dataset.id,
            "file_name": "",
            "size": -1,
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, test_assets, signer, monkeypatch):
        monkeypatch.setattr(signer, "delete_object", AsyncMock(return_value=True))

        response = await client.delete(f"/api/media/{test_assets[0].id}")

        assert response.status_code == 200
        assert response.json() == {"success": True}


class TestCaptionEndpoints:
    """Tests for the caption review endpoints."""

    @pytest.mark.asyncio
    async def test_get_unknown_caption(self, client: AsyncClient):
        response = await client.get("/api/captions/999")

        assert response.status_code == 404
        assert response.json()["detail"] == "Caption not found"

    @pytest.mark.asyncio
    async def test_approve_uses_caller_identity(self, client: AsyncClient, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id, manual_caption="A cat")

        response = await client.post(f"/api/captions/{caption.id}/approve")

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["approved_by"] == "reviewer@example.com"

    @pytest.mark.asyncio
    async def test_approve_explicit_approver(self, client: AsyncClient, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id)

        response = await client.post(
            f"/api/captions/{caption.id}/approve", json={"approved_by": "lead@example.com"}
        )

        assert response.json()["approved_by"] == "lead@example.com"

    @pytest.mark.asyncio
    async def test_reject_with_reason(self, client: AsyncClient, db_session, test_assets):
        caption = await CaptionService.create_caption(db_session, test_assets[0].id)

        response = await client.post(f"/api/captions/{caption.id}/reject", json={"reason": "Blurry"})

        assert response.json()["status"] == "rejected"
        assert response.json()["rejection_reason"] == "Blurry"

    @pytest.mark.asyncio
    async def test_create_and_detail(self, client: AsyncClient, test_assets):
        response = await client.post("/api/captions", json={
            "media_asset_id": test_assets[0].id,
            "manual_caption": "A cat",
        })

        assert response.status_code == 201
        assert response.json()["status"] == "completed"

        detail = await client.get(f"/api/captions/{response.json()['id']}")
        assert detail.json()["media_asset"]["original_name"] == "cat.jpg"

    @pytest.mark.asyncio
    async def test_batch_approve_requires_ids(self, client: AsyncClient):
        response = await client.post("/api/captions/batch-approve", json={"ids": []})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_trigger_and_process_queue(self, client: AsyncClient, test_dataset, test_assets, fake_provider):
        fake_provider.failures["https://cdn.example.com/dog.png"] = "OpenAI API error: 500 - boom"

        response = await client.post("/api/captions/trigger", json={"dataset_id": test_dataset.id})
        assert response.json()["queued"] == 3
        dog_id = response.json()["caption_ids"][1]

        response = await client.post("/api/captions/trigger", json={"dataset_id": test_dataset.id})
        assert response.json() == {"queued": 0, "caption_ids": []}

        response = await client.post("/api/captions/process-queue", json={"limit": 10, "concurrency": 2})

        assert response.status_code == 200
        assert response.json() == {
            "processed": 3,
            "succeeded": 2,
            "failed": 1,
            "errors": [{"caption_id": dog_id, "error": "OpenAI API error: 500 - boom"}],
        }

        response = await client.get("/api/captions", params={"status": "completed"})
        assert len(response.json()) == 2

    @pytest.mark.asyncio
    async def test_trigger_with_unknown_template(self, client: AsyncClient, test_dataset, test_assets):
        response = await client.post(
            "/api/captions/trigger", json={"dataset_id": test_dataset.id, "prompt_template_id": 999}
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Prompt template not found"

    @pytest.mark.asyncio
    async def test_trigger_with_unknown_dataset(self, client: AsyncClient):
        response = await client.post("/api/captions/trigger", json={"dataset_id": 999})

        assert response.status_code == 404
        assert response.json()["detail"] == "Dataset not found"

    @pytest.mark.asyncio
    async def test_process_queue_without_body(self, client: AsyncClient):
        response = await client.post("/api/captions/process-queue")

        assert response.status_code == 200
        assert response.json()["processed"] == 0

    @pytest.mark.asyncio
    async def test_export_csv(self, client: AsyncClient, db_session, test_dataset, test_assets):
        db_session.add(Caption(
            media_asset_id=test_assets[0].id,
            final_caption='He said "hi"',
            status=CaptionStatus.APPROVED,
        ))
        await db_session.commit()

        response = await client.get(
            "/api/captions/export", params={"dataset_id": test_dataset.id, "format": "csv"}
        )

        assert response.status_code == 200
        assert response.json()["data"] == (
            "filename,caption,status,model,confidence\n"
            '"cat.jpg","He said ""hi""","approved","",""'
        )

    @pytest.mark.asyncio
    async def test_export_rejects_unknown_format(self, client: AsyncClient):
        response = await client.get("/api/captions/export", params={"format": "xml"})

        assert response.status_code == 422


class TestPromptAndTaskEndpoints:

    @pytest.mark.asyncio
    async def test_prompt_template_bounds(self, client: AsyncClient):
        response = await client.post("/api/prompts", json={
            "name": "Hot",
            "system_prompt": "s",
            "user_prompt_template": "u",
            "temperature": 150,
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_default_prompt_flow(self, client: AsyncClient):
        response = await client.post("/api/prompts", json={
            "name": "Catalogue",
            "system_prompt": "s",
            "user_prompt_template": "u",
            "is_default": True,
        })
        assert response.status_code == 201

        default = await client.get("/api/prompts/default")
        assert default.json()["name"] == "Catalogue"

    @pytest.mark.asyncio
    async def test_task_lifecycle(self, client: AsyncClient, test_dataset):
        response = await client.post("/api/tasks", json={
            "dataset_id": test_dataset.id,
            "type": "caption",
            "metadata": {"batch": 1},
        })
        assert response.status_code == 201
        task = response.json()
        assert task["metadata"] == {"batch": 1}

        response = await client.post(f"/api/tasks/{task['id']}/status", json={"status": "succeeded"})
        assert response.json()["progress"] == 100
        assert response.json()["completed_at"] is not None

    @pytest.mark.asyncio
    async def test_task_unknown_dataset(self, client: AsyncClient):
        response = await client.post("/api/tasks", json={"dataset_id": 999, "type": "qa"})

        assert response.status_code == 404
