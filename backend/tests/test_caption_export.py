"""
Tests for caption export formats.
"""
from types import SimpleNamespace

import pytest

from app.models.caption import Caption, CaptionStatus
from app.services.caption_export import (
    best_caption,
    export_captions,
    export_csv,
    txt_filename,
)


def make_row(**overrides):
    values = {
        "id": 1,
        "original_name": "cat.jpg",
        "public_url": "https://cdn.example.com/cat.jpg",
        "storage_key": "datasets/1/1-cat.jpg",
        "ai_caption": None,
        "manual_caption": None,
        "final_caption": None,
        "status": CaptionStatus.APPROVED,
        "model": None,
        "confidence": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestFormatting:

    def test_best_caption_priority(self):
        assert best_caption(make_row(ai_caption="a", manual_caption="m", final_caption="f")) == "f"
        assert best_caption(make_row(ai_caption="a", manual_caption="m")) == "m"
        assert best_caption(make_row(ai_caption="a")) == "a"
        assert best_caption(make_row()) == ""

    def test_empty_final_caption_is_kept(self):
        row = make_row(ai_caption="a", manual_caption="m", final_caption="")
        assert best_caption(row) == ""

    def test_model_uses_same_priority(self):
        caption = Caption(ai_caption="a", manual_caption="", final_caption=None)
        assert caption.best_caption == ""

    def test_zero_confidence_is_written(self):
        line = export_csv([make_row(final_caption="x", confidence=0)]).split("\n")[1]
        assert line.endswith(',"0"')

    def test_csv_quotes_and_escapes(self):
        rows = [
            make_row(final_caption='He said "hi"', model="gpt-4o", confidence=90),
            make_row(id=2, original_name="dog.png", ai_caption="A dog, running"),
        ]

        assert export_csv(rows) == (
            "filename,caption,status,model,confidence\n"
            '"cat.jpg","He said ""hi""","approved","gpt-4o","90"\n'
            '"dog.png","A dog, running","approved","",""'
        )

    def test_csv_header_only(self):
        assert export_csv([]) == "filename,caption,status,model,confidence"

    @pytest.mark.parametrize("name,expected", [
        ("cat.jpg", "cat.txt"),
        ("archive.tar.gz", "archive.tar.txt"),
        ("README", "README.txt"),
        (None, "caption_7.txt"),
        ("", "caption_7.txt"),
    ])
    def test_txt_filename(self, name, expected):
        assert txt_filename(name, 7) == expected


class TestExportCaptions:
    """Tests against the database."""

    @pytest.mark.asyncio
    async def test_txt_export(self, db_session, test_dataset, test_assets):
        db_session.add_all([
            Caption(media_asset_id=test_assets[0].id, final_caption="A cat", status=CaptionStatus.APPROVED),
            Caption(media_asset_id=test_assets[1].id, ai_caption="A dog", status=CaptionStatus.COMPLETED),
        ])
        await db_session.commit()

        result = await export_captions(db_session, dataset_id=test_dataset.id, export_format="txt")

        assert result == {
            "format": "txt",
            "files": [
                {"filename": "cat.txt", "content": "A cat"},
                {"filename": "dog.txt", "content": "A dog"},
            ],
        }

    @pytest.mark.asyncio
    async def test_status_filter(self, db_session, test_dataset, test_assets):
        db_session.add_all([
            Caption(media_asset_id=test_assets[0].id, final_caption="A cat", status=CaptionStatus.APPROVED),
            Caption(media_asset_id=test_assets[1].id, ai_caption="A dog", status=CaptionStatus.COMPLETED),
        ])
        await db_session.commit()

        result = await export_captions(
            db_session, dataset_id=test_dataset.id, export_format="json", status_filter=CaptionStatus.APPROVED
        )

        assert result["format"] == "json"
        assert len(result["data"]) == 1
        assert result["data"][0]["original_name"] == "cat.jpg"
        assert result["data"][0]["status"] == "approved"
        assert result["data"][0]["final_caption"] == "A cat"

    @pytest.mark.asyncio
    async def test_rows_ordered_by_filename(self, db_session, test_dataset, test_assets):
        for asset in test_assets:
            db_session.add(Caption(media_asset_id=asset.id, ai_caption=asset.original_name))
        await db_session.commit()

        result = await export_captions(db_session, dataset_id=test_dataset.id, export_format="csv")

        lines = result["data"].split("\n")
        assert [line.split(",")[0] for line in lines[1:]] == ['"bird.webp"', '"cat.jpg"', '"dog.png"']

    @pytest.mark.asyncio
    async def test_unknown_format(self, db_session):
        with pytest.raises(ValueError):
            await export_captions(db_session, export_format="xml")
