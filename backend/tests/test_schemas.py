"""
Marketplace Backend: Schema Tests
=================================

camelCase ↔ snake_case mapping and the field rules enforced before a
request reaches a service.
"""

import uuid
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from marketplace.models import Project, User
from marketplace.schemas import (
    InterestStatusUpdate,
    MessageCreate,
    ProfileUpdate,
    ProjectCreate,
    ProjectUpdate,
    ProjectWithClient,
    UserRead,
    UserUpdate,
)
from marketplace.schemas.user import MAX_SKILLS


class TestCamelCaseMapping:

    def test_read_model_from_orm_row_dumps_camel_case(self):
        user = User(
            id=uuid.uuid4(),
            email="ada@example.com",
            first_name="Ada",
            last_name="Lovelace",
            profile_image_url=None,
        )
        data = UserRead.model_validate(user).model_dump(by_alias=True)

        assert data["firstName"] == "Ada"
        assert data["lastName"] == "Lovelace"
        assert "profileImageUrl" in data
        assert "first_name" not in data

    def test_embedded_client_summary(self):
        client = User(id=uuid.uuid4(), email="c@example.com", first_name="Cleo")
        project = Project(
            id=7,
            client_id=client.id,
            title="Landing page",
            category="Web",
            description="Static site",
            budget_min=100,
            budget_max=None,
            status="open",
            created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        )
        project.client = client

        data = ProjectWithClient.model_validate(project).model_dump(by_alias=True, mode="json")

        assert data["clientId"] == str(client.id)
        assert data["budgetMin"] == 100
        assert data["budgetMax"] is None
        assert data["client"] == {
            "id": str(client.id),
            "email": "c@example.com",
            "firstName": "Cleo",
            "lastName": None,
        }

    def test_input_accepts_camel_and_snake_case(self):
        camel = ProjectCreate(title="T", category="C", description="D", budgetMin=5)
        snake = ProjectCreate(title="T", category="C", description="D", budget_min=5)
        assert camel.budget_min == snake.budget_min == 5


class TestProjectInput:

    def test_whitespace_is_trimmed(self):
        body = ProjectCreate(title="  Logo design  ", category=" Design", description="A logo ")
        assert body.title == "Logo design"
        assert body.category == "Design"

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            ProjectCreate(title="   ", category="Design", description="A logo")

    def test_budget_must_be_positive(self):
        with pytest.raises(ValidationError):
            ProjectCreate(title="T", category="C", description="D", budgetMin=0)

    def test_update_tracks_only_sent_fields(self):
        body = ProjectUpdate(title="New title", budgetMax=None)
        assert body.model_dump(exclude_unset=True) == {"title": "New title", "budget_max": None}

    def test_update_rejects_null_title(self):
        with pytest.raises(ValidationError, match="cannot be null"):
            ProjectUpdate(title=None)

    def test_update_status_is_plain_value(self):
        body = ProjectUpdate(status="in_progress")
        assert body.model_dump(exclude_unset=True) == {"status": "in_progress"}

    def test_update_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            ProjectUpdate(status="archived")


class TestProfileInput:

    def test_skills_trimmed_deduplicated_in_order(self):
        body = ProfileUpdate(skills=[" Python ", "Go", "", "Python", "  ", "Rust"])
        assert body.skills == ["Python", "Go", "Rust"]

    def test_too_many_skills(self):
        with pytest.raises(ValidationError, match="At most"):
            ProfileUpdate(skills=[f"skill-{i}" for i in range(MAX_SKILLS + 1)])

    def test_skill_too_long(self):
        with pytest.raises(ValidationError, match="at most"):
            ProfileUpdate(skills=["x" * 51])

    def test_null_role_rejected(self):
        with pytest.raises(ValidationError):
            ProfileUpdate(role=None)

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            ProfileUpdate(role="admin")

    def test_enums_dump_as_values(self):
        body = ProfileUpdate(role="developer", experienceLevel="senior", availabilityStatus="busy")
        assert body.model_dump(exclude_unset=True) == {
            "role": "developer",
            "experience_level": "senior",
            "availability_status": "busy",
        }

    def test_bio_limit(self):
        with pytest.raises(ValidationError):
            ProfileUpdate(bio="x" * 2001)


class TestUserInput:

    @pytest.mark.parametrize(
        "url",
        ["https://cdn.example.com/me.png", "http://localhost/me.png", "/api/files/avatars/x/avatar.png"],
    )
    def test_image_url_accepted(self, url):
        assert UserUpdate(profileImageUrl=url).profile_image_url == url

    @pytest.mark.parametrize("url", ["javascript:alert(1)", "//evil.example.com/x.png", "ftp://x/y"])
    def test_image_url_rejected(self, url):
        with pytest.raises(ValidationError):
            UserUpdate(profileImageUrl=url)

    def test_image_url_can_be_cleared(self):
        body = UserUpdate(profileImageUrl=None)
        assert body.model_dump(exclude_unset=True) == {"profile_image_url": None}


class TestInterestAndMessageInput:

    def test_pending_is_not_a_decision(self):
        with pytest.raises(ValidationError, match="accepted' or 'rejected"):
            InterestStatusUpdate(status="pending")

    def test_accepted(self):
        assert InterestStatusUpdate(status="accepted").status == "accepted"

    def test_message_length_limit(self):
        with pytest.raises(ValidationError):
            MessageCreate(receiverId=uuid.uuid4(), content="x" * 5001)

    def test_blank_message_rejected(self):
        with pytest.raises(ValidationError):
            MessageCreate(receiverId=uuid.uuid4(), content="   ")

    def test_receiver_must_be_uuid(self):
        with pytest.raises(ValidationError):
            MessageCreate(receiverId="bob", content="hi")
