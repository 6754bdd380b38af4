"""Shared fixtures: tiny real images, a scripted oracle and an isolated API client."""

from io import BytesIO
from typing import Dict, List, Optional

import pytest
from PIL import Image
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from audit_app.db import get_db, init_db, make_engine
from audit_app.errors import OracleError
from audit_app.main import app
from audit_app.oracle import get_oracle
from audit_app.schemas import ImageBlob, RefinedScore, ScoreResult


def make_png(size=(4, 4), color=(200, 30, 30)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_jpeg(size=(4, 4)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, (10, 120, 10)).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def png_blob(png_bytes) -> ImageBlob:
    return ImageBlob(data=png_bytes, media_type="image/png")


class FakeOracle:
    """Scripted stand-in for the scoring model.

    `scores` maps principle id -> score for every call; `per_section` overrides
    it for prompts mentioning a given section name. A call whose prompt contains
    `fail_on` raises OracleError.
    """

    def __init__(
        self,
        scores: Optional[Dict[str, int]] = None,
        per_section: Optional[Dict[str, Dict[str, int]]] = None,
        default: int = 3,
        fail_on: Optional[str] = None,
        refined: Optional[List[RefinedScore]] = None,
        refine_error: Optional[Exception] = None,
    ):
        self.scores = scores or {}
        self.per_section = per_section or {}
        self.default = default
        self.fail_on = fail_on
        self.refined = refined
        self.refine_error = refine_error
        self.calls = []
        self.refine_calls = []

    async def score(self, images, prompt, expected_ids):
        self.calls.append({"prompt": prompt, "expected": list(expected_ids), "images": list(images)})
        if self.fail_on and self.fail_on in prompt:
            raise OracleError("model timed out", unreachable=True)
        table = dict(self.scores)
        for name, overrides in self.per_section.items():
            if f'"{name}"' in prompt:
                table.update(overrides)
        return {
            pid: ScoreResult(score=table.get(pid, self.default), reasoning=f"observed {pid}", confidence="medium")
            for pid in expected_ids
        }

    async def refine(self, original_scores, answers):
        self.refine_calls.append({"originals": list(original_scores), "answers": list(answers)})
        if self.refine_error is not None:
            raise self.refine_error
        if self.refined is not None:
            return list(self.refined)
        return [
            RefinedScore(
                principle_id=o.principle_id,
                original_score=99,
                refined_score=min(5, o.score + 1),
                refined_reasoning="context shows more support",
                specific_actions=["Do the thing"],
            )
            for o in original_scores
        ]


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def db_session():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db_session, fake_oracle):
    def override_db():
        yield db_session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_oracle] = lambda: fake_oracle
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
