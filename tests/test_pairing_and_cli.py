"""Tests for PairingConfig, ProfileStore and the CLI in local mode."""

import json

import pytest

from src.dinner_match import cli
from src.dinner_match.models import Recipe
from src.dinner_match.pairing import PairingConfig, ProfileStore


class TestPairingConfig:

    def test_blank_partner_means_unpaired(self):
        pairing = PairingConfig("A", "   ")
        assert pairing.partner_id() is None
        assert not pairing.is_paired

    def test_self_pairing_is_not_paired(self):
        assert not PairingConfig("A", "A").is_paired

    def test_empty_self_id_rejected(self):
        with pytest.raises(ValueError):
            PairingConfig("")

    def test_subscribers_notified_on_change_only(self):
        pairing = PairingConfig("A", "B")
        seen = []
        unsubscribe = pairing.subscribe(lambda old, new: seen.append((old, new)))

        pairing.set_partner("B")
        pairing.set_partner("C")
        unsubscribe()
        pairing.set_partner("D")

        assert seen == [("B", "C")]


class TestProfileStore:

    def test_first_load_generates_and_persists_user_id(self, tmp_path):
        path = tmp_path / "nested" / "profile.json"
        first = ProfileStore(path).load_pairing()
        second = ProfileStore(path).load_pairing()

        assert first.self_id() == second.self_id()
        assert json.loads(path.read_text())["user_id"] == first.self_id()

    def test_save_pairing_round_trip(self, tmp_path):
        store = ProfileStore(tmp_path / "profile.json")
        pairing = store.load_pairing()
        pairing.set_partner("partner-42")
        pairing.display_name = "Sarah"
        store.save_pairing(pairing)

        reloaded = ProfileStore(tmp_path / "profile.json").load_pairing()
        assert reloaded.partner_id() == "partner-42"
        assert reloaded.display_name == "Sarah"

    def test_corrupt_file_starts_fresh(self, tmp_path):
        path = tmp_path / "profile.json"
        path.write_text("{not json")
        pairing = ProfileStore(path).load_pairing()
        assert pairing.self_id()

    def test_recipe_cache_skips_bad_rows(self, tmp_path):
        store = ProfileStore(tmp_path / "profile.json")
        store.cache_recipes([Recipe(id="R1", title="Lasagne")])
        data = json.loads((tmp_path / "profile.json").read_text())
        data["recipes"].append({"title": "no id"})
        (tmp_path / "profile.json").write_text(json.dumps(data))

        cached = ProfileStore(tmp_path / "profile.json").cached_recipes()
        assert [r.id for r in cached] == ["R1"]


@pytest.fixture
def local_mode(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)


class TestCli:

    def test_whoami_and_pair(self, tmp_path, capsys):
        profile = ProfileStore(tmp_path / "profile.json")

        assert cli.main(["pair", "partner-1", "--name", "Lukas"], profile=profile) == 0
        assert cli.main(["whoami"], profile=profile) == 0

        out = capsys.readouterr().out
        assert "Partner : partner-1" in out
        assert "Name    : Lukas" in out

    def test_today_in_local_mode(self, tmp_path, capsys, local_mode):
        profile = ProfileStore(tmp_path / "profile.json")

        assert cli.main(["today"], profile=profile) == 0

        out = capsys.readouterr().out
        assert "Mode         : local" in out
        assert "State: no_decision" in out

    def test_vote_in_local_mode(self, tmp_path, capsys, local_mode):
        profile = ProfileStore(tmp_path / "profile.json")

        assert cli.main(["vote", "like"], profile=profile) == 0

        out = capsys.readouterr().out
        assert "Like recorded for" in out
        assert "sync is degraded" not in out

    def test_matches_empty(self, tmp_path, capsys, local_mode):
        profile = ProfileStore(tmp_path / "profile.json")

        assert cli.main(["matches", "--day", "2024-01-05"], profile=profile) == 0
        assert "No matches for 2024-01-05." in capsys.readouterr().out

    def test_watch_stops_after_timeout(self, tmp_path, local_mode):
        profile = ProfileStore(tmp_path / "profile.json")
        assert cli.main(["watch", "--seconds", "0.01"], profile=profile) == 0

    def test_doctor_without_url(self, tmp_path, local_mode):
        profile = ProfileStore(tmp_path / "profile.json")
        assert cli.main(["doctor"], profile=profile) == 1
