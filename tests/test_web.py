from pathlib import Path

from fastapi.testclient import TestClient

from plsystem.web.app import create_app


class TestWebApp:
    def test_grammar_endpoint(self, config_path: Path) -> None:
        client = TestClient(create_app(config_path))
        response = client.get("/api/grammar")
        assert response.status_code == 200
        body = response.json()
        assert body["axiom"] == "A"
        assert body["productions"][1] == {"match": "F(k)", "produce": "F(k+1)", "probability": 1.0}

    def test_derivation_endpoint(self, config_path: Path) -> None:
        client = TestClient(create_app(config_path))
        response = client.get("/api/derivation", params={"steps": 1})
        assert response.status_code == 200
        body = response.json()
        assert body["final"] == "F(1)?P(0,1)-A"
        assert len(body["steps"]) == 1

    def test_seeded_derivations_repeat(self, config_path: Path) -> None:
        client = TestClient(create_app(config_path))
        first = client.get("/api/derivation", params={"steps": 3, "seed": 4}).json()
        second = client.get("/api/derivation", params={"steps": 3, "seed": 4}).json()
        assert first == second

    def test_negative_steps_rejected(self, config_path: Path) -> None:
        client = TestClient(create_app(config_path))
        assert client.get("/api/derivation", params={"steps": -1}).status_code == 422

    def test_steps_above_limit_rejected(self, config_path: Path) -> None:
        client = TestClient(create_app(config_path))
        response = client.get("/api/derivation", params={"steps": 51})
        assert response.status_code == 422
        assert "50" in response.json()["detail"]
        assert client.get("/api/derivation", params={"steps": 50}).status_code == 200

    def test_engine_errors_map_to_422(self, tmp_path: Path) -> None:
        (tmp_path / "g.toml").write_text(
            '[grammar]\naxiom = "A"\nproductions = ["A -> F(k)"]\n', encoding="utf-8"
        )
        config = tmp_path / "c.toml"
        config.write_text('[lsystem]\ngrammar_file = "g.toml"\n', encoding="utf-8")
        client = TestClient(create_app(config))
        response = client.get("/api/derivation")
        assert response.status_code == 422
        assert "k" in response.json()["detail"]
