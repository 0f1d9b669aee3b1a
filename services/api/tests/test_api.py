import pytest


def create_game(client, **body) -> dict:
    response = client.post("/api/games", json=body)
    assert response.status_code == 201
    return response.json()


def add_round(client, game_id, title="Round 1") -> dict:
    response = client.post(f"/api/games/{game_id}/rounds", json={"title": title})
    assert response.status_code == 201
    return response.json()


def add_question(client, round_id, **body) -> dict:
    payload = {"prompt": "Capital of France?", "correctAnswer": "Paris", **body}
    response = client.post(f"/api/rounds/{round_id}/questions", json=payload)
    assert response.status_code == 201
    return response.json()


def join(client, game_id, name):
    return client.post(f"/api/games/{game_id}/teams", json={"name": name})


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestGameEndpoints:
    def test_create_and_fetch_by_code(self, client):
        created = create_game(client, title="Quiz Night", maxTeams=10)

        response = client.get(f"/api/games/by-code/{created['joinCode'].lower()}")

        assert response.status_code == 200
        game = response.json()
        assert game["gameId"] == created["gameId"]
        assert game["state"] == "lobby"
        assert game["maxTeams"] == 10

    def test_missing_game_error_body(self, client):
        response = client.get("/api/games/game_missing")

        assert response.status_code == 404
        assert response.json() == {"detail": {"code": "GAME_NOT_FOUND", "message": "Game not found"}}

    def test_max_teams_out_of_range(self, client):
        game = create_game(client)
        response = client.put(f"/api/games/{game['gameId']}/max-teams", json={"maxTeams": 500})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION"

    def test_list_includes_counts(self, client):
        game = create_game(client, title="Counted")
        round_obj = add_round(client, game["gameId"])
        add_question(client, round_obj["roundId"])

        listed = client.get("/api/games").json()

        assert [(g["title"], g["roundCount"], g["questionCount"]) for g in listed] == [("Counted", 1, 1)]


class TestAuthoringEndpoints:
    def test_question_variants_round_trip_in_camel_case(self, client):
        game = create_game(client)
        round_obj = add_round(client, game["gameId"])

        question = add_question(
            client,
            round_obj["roundId"],
            type="multiple_choice",
            options=["Paris", "Rome"],
            points=2,
        )

        assert question["type"] == "multiple_choice"
        assert question["options"] == ["Paris", "Rome"]
        assert question["indexInRound"] == 0
        assert question["points"] == 2

    def test_multi_field_question(self, client):
        game = create_game(client)
        round_obj = add_round(client, game["gameId"])

        question = add_question(
            client,
            round_obj["roundId"],
            prompt="Composer and piece?",
            correctAnswer="Beethoven - Moonlight Sonata",
            answerFields=[
                {"id": "composer", "label": "Composer", "correctAnswer": "Beethoven"},
                {"id": "piece", "label": "Piece", "correctAnswer": "Moonlight Sonata"},
            ],
        )

        assert [f["id"] for f in question["answerFields"]] == ["composer", "piece"]

    def test_reorder_rounds_requires_every_round(self, client):
        game = create_game(client)
        first = add_round(client, game["gameId"], "One")
        add_round(client, game["gameId"], "Two")

        response = client.put(f"/api/games/{game['gameId']}/rounds/order", json={"roundIds": [first["roundId"]]})

        assert response.status_code == 400

    def test_editing_started_game_conflicts(self, client):
        game = create_game(client)
        round_obj = add_round(client, game["gameId"])
        add_question(client, round_obj["roundId"])
        client.post(f"/api/games/{game['gameId']}/start-round")

        response = client.patch(f"/api/rounds/{round_obj['roundId']}", json={"title": "Renamed"})

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "GAME_NOT_EDITABLE"


class TestJoinErrors:
    @pytest.fixture
    def game_id(self, client):
        game = create_game(client, maxTeams=1)
        assert join(client, game["gameId"], "Alpha").status_code == 201
        return game["gameId"]

    def test_lobby_full(self, client, game_id):
        response = join(client, game_id, "Beta")
        assert (response.status_code, response.json()["detail"]["code"]) == (409, "LOBBY_FULL")

    def test_name_taken(self, client, game_id):
        client.put(f"/api/games/{game_id}/max-teams", json={"maxTeams": 5})
        response = join(client, game_id, "ALPHA")
        assert (response.status_code, response.json()["detail"]["code"]) == (409, "TEAM_NAME_TAKEN")

    def test_lobby_locked(self, client, game_id):
        client.post(f"/api/games/{game_id}/lobby-lock")
        response = join(client, game_id, "Beta")
        assert response.json()["detail"]["code"] == "LOBBY_LOCKED"

    def test_unknown_game(self, client):
        response = join(client, "game_missing", "Alpha")
        assert (response.status_code, response.json()["detail"]["code"]) == (404, "GAME_NOT_FOUND")


class TestLiveGame:
    def test_host_runs_a_question(self, client, emitted):
        game = create_game(client)
        game_id = game["gameId"]
        round_obj = add_round(client, game_id)
        question = add_question(client, round_obj["roundId"], points=2)
        team_id = join(client, game_id, "Alpha").json()["teamId"]

        started = client.post(f"/api/games/{game_id}/start-round").json()
        assert (started["success"], started["state"]) == (True, "in_round")

        current = client.get(f"/api/games/{game_id}/current-question").json()
        assert current["question"]["questionId"] == question["questionId"]
        assert (current["questionNumber"], current["totalQuestions"]) == (1, 1)

        submitted = client.post(
            f"/api/questions/{question['questionId']}/answers",
            json={"teamId": team_id, "rawAnswer": "paris"},
        )
        assert submitted.status_code == 200

        assert client.post(f"/api/games/{game_id}/close-submissions").json()["state"] == "grading"
        assert client.post(f"/api/questions/{question['questionId']}/grade").json() == {"gradedCount": 1}

        finished = client.post(f"/api/games/{game_id}/finalize-and-advance").json()
        assert (finished["state"], finished["finalizedCount"]) == ("finished", 1)

        standings = client.get(f"/api/games/{game_id}/standings").json()
        assert standings == [{"rank": 1, "teamId": team_id, "teamName": "Alpha", "totalScore": 2}]

        state_events = [call for call in emitted.await_args_list if call.args[0] == "game:state"]
        assert state_events
        assert state_events[-1].kwargs["room"] == f"game:{game['joinCode']}"
        assert state_events[-1].args[1]["game"]["state"] == "finished"

    def test_failed_transition_is_not_an_error(self, client):
        game = create_game(client)

        response = client.post(f"/api/games/{game['gameId']}/close-submissions")

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["reason"] == "not_in_round"

    def test_review_and_second_finalize(self, client):
        game = create_game(client)
        round_obj = add_round(client, game["gameId"])
        question = add_question(client, round_obj["roundId"], correctAnswer="Ludwig van Beethoven")
        team_id = join(client, game["gameId"], "Alpha").json()["teamId"]
        answer_id = client.post(
            f"/api/questions/{question['questionId']}/answers",
            json={"teamId": team_id, "rawAnswer": "Ludwig"},
        ).json()["answerId"]
        client.post(f"/api/questions/{question['questionId']}/grade")

        review = client.get(f"/api/questions/{question['questionId']}/answers/review").json()
        assert [a["answerId"] for a in review] == [answer_id]

        scored = client.put(f"/api/answers/{answer_id}/final-score", json={"finalScore": 1}).json()
        assert (scored["finalScore"], scored["needsReview"]) == (1, False)

        assert client.post(f"/api/questions/{question['questionId']}/finalize").json() == {"finalizedCount": 1}
        again = client.post(f"/api/questions/{question['questionId']}/finalize")
        assert (again.status_code, again.json()["detail"]["code"]) == (409, "QUESTION_FINALIZED")

    def test_reset_back_to_lobby(self, client):
        game = create_game(client)
        round_obj = add_round(client, game["gameId"])
        add_question(client, round_obj["roundId"])
        join(client, game["gameId"], "Alpha")
        client.post(f"/api/games/{game['gameId']}/start-round")

        result = client.post(f"/api/games/{game['gameId']}/reset", json={"preserveTeams": False}).json()

        assert result["state"] == "lobby"
        assert client.get(f"/api/games/{game['gameId']}/teams").json() == []
