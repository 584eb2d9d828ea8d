"""
Tests for Progress API endpoints.
"""
import pytest

from eartraining.config import settings
from eartraining.models.progress import Progress


API = settings.API_V1_PREFIX

PERFECT_SESSION = {
    "exercise_type": "melodic-intervals",
    "difficulty": "beginner",
    "total_questions": 10,
    "correct_answers": 10,
    "time_spent": 80,
    "average_response_time": 8
}


def seed_progress(db, user_id: str, **fields) -> None:
    progress = Progress.new(user_id)
    for name, value in fields.items():
        setattr(progress, name, value)
    db.progress[progress.id] = progress.model_dump(mode="json")


class TestGetUserProgress:
    """Test GET /progress/user endpoint."""

    def test_created_on_first_read(self, client, db, make_user):
        user, headers = make_user()

        response = client.get(f"{API}/progress/user", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_xp"] == 0
        assert data["current_level"] == 1
        assert data["xp_for_next_level"] == 283
        assert data["level_progress"] == 0
        assert data["recent_sessions"] == []
        assert f"progress_{user['id']}" in db.progress

    def test_requires_token(self, client):
        response = client.get(f"{API}/progress/user")
        assert response.status_code == 401

    def test_returns_ten_most_recent_sessions(self, client, make_user):
        _, headers = make_user()
        for _ in range(12):
            client.post(f"{API}/progress/update", json=PERFECT_SESSION, headers=headers)

        response = client.get(f"{API}/progress/user", headers=headers)

        sessions = response.json()["recent_sessions"]
        assert len(sessions) == 10
        completed = [s["completed_at"] for s in sessions]
        assert completed == sorted(completed, reverse=True)


class TestUpdateProgress:
    """Test POST /progress/update endpoint."""

    @pytest.mark.asyncio
    async def test_update_success(self, async_client, db, make_user):
        user, headers = make_user()

        response = await async_client.post(
            f"{API}/progress/update", json=PERFECT_SESSION, headers=headers
        )

        assert response.status_code == 200
        data = response.json()
        results = data["session_results"]
        assert results["points_earned"] == 75
        assert results["xp_earned"] == 63
        assert results["accuracy"] == 100
        assert results["level_up"] is False
        assert {b["id"] for b in results["new_badges"]} == {"first-exercise", "perfect-session"}
        assert results["points_breakdown"]["base_points"] == 20

        updated = data["updated_progress"]
        assert updated["total_xp"] == 63
        assert updated["current_global_streak"] == 1
        assert updated["overall_accuracy"] == 100

        stored = db.progress[f"progress_{user['id']}"]
        assert stored["total_exercises"] == 1
        assert db.users[user["id"]]["xp"] == 63

    @pytest.mark.asyncio
    async def test_level_up(self, async_client, db, make_user):
        user, headers = make_user()
        seed_progress(db, user["id"], total_xp=270, total_exercises=3)

        response = await async_client.post(
            f"{API}/progress/update", json=PERFECT_SESSION, headers=headers
        )

        results = response.json()["session_results"]
        assert results["level_up"] is True
        assert results["new_level"] == 2

    @pytest.mark.asyncio
    async def test_invalid_session(self, async_client, make_user):
        _, headers = make_user()

        response = await async_client.post(
            f"{API}/progress/update",
            json={**PERFECT_SESSION, "correct_answers": 11},
            headers=headers
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_exercise_type(self, async_client, make_user):
        _, headers = make_user()

        response = await async_client.post(
            f"{API}/progress/update",
            json={**PERFECT_SESSION, "exercise_type": "sight-reading"},
            headers=headers
        )

        assert response.status_code == 422


class TestLeaderboard:
    """Test GET /progress/leaderboard endpoint."""

    def make_board(self, db, make_user):
        stats = [
            ("ana@example.com", "Ana", {"total_xp": 500, "total_points": 900, "overall_accuracy": 70.46, "total_exercises": 5}),
            ("bia@example.com", "Bia", {"total_xp": 1500, "total_points": 300, "overall_accuracy": 95.0, "total_exercises": 9}),
            ("caio@example.com", "Caio", {"total_xp": 900, "total_points": 600, "overall_accuracy": 88.0, "total_exercises": 7}),
            ("davi@example.com", "Davi", {"total_xp": 0, "total_points": 0, "overall_accuracy": 0, "total_exercises": 0}),
        ]
        for email, name, fields in stats:
            user, _ = make_user(email=email, name=name)
            seed_progress(db, user["id"], **fields)

    @pytest.mark.parametrize("board_type,field,expected", [
        ("xp", "total_xp", ["Bia", "Caio", "Ana"]),
        ("points", "total_points", ["Ana", "Caio", "Bia"]),
        ("accuracy", "overall_accuracy", ["Bia", "Caio", "Ana"]),
    ])
    def test_sorted_by_metric(self, client, db, make_user, board_type, field, expected):
        self.make_board(db, make_user)

        response = client.get(f"{API}/progress/leaderboard", params={"type": board_type})

        assert response.status_code == 200
        data = response.json()
        assert data["type"] == board_type
        assert data["total"] == 3
        entries = data["leaderboard"]
        assert [e["user"]["name"] for e in entries] == expected
        assert [e["rank"] for e in entries] == [1, 2, 3]
        values = [e["stats"][field] for e in entries]
        assert values == sorted(values, reverse=True)

    def test_level_ties_broken_by_xp(self, client, db, make_user):
        for name, xp in (("Ana", 300), ("Bia", 450), ("Caio", 900)):
            user, _ = make_user(email=f"{name.lower()}@example.com", name=name)
            seed_progress(db, user["id"], total_xp=xp, current_level=2 if xp < 520 else 3, total_exercises=1)

        response = client.get(f"{API}/progress/leaderboard", params={"type": "level"})

        assert [e["user"]["name"] for e in response.json()["leaderboard"]] == ["Caio", "Bia", "Ana"]

    def test_accuracy_rounded_and_limit(self, client, db, make_user):
        self.make_board(db, make_user)

        response = client.get(f"{API}/progress/leaderboard", params={"type": "points", "limit": 1})

        entries = response.json()["leaderboard"]
        assert len(entries) == 1
        assert entries[0]["stats"]["overall_accuracy"] == 70.5

    def test_missing_user_is_anonymous(self, client, db):
        seed_progress(db, "ghost", total_xp=10, total_exercises=1)

        response = client.get(f"{API}/progress/leaderboard")

        assert response.json()["leaderboard"][0]["user"]["name"] == "Usuário Anônimo"

    def test_invalid_type(self, client):
        response = client.get(f"{API}/progress/leaderboard", params={"type": "streak"})
        assert response.status_code == 422
