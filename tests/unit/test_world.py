"""
Unit tests for the in-memory game world.
"""

import json

import pytest

from gamestate_api import NotFoundError, PlayerSnapshot, SnapshotWorld


class TestPlayerLookup:
    """find_player / is_in_world."""

    def test_case_insensitive(self, world: SnapshotWorld):
        assert world.find_player("thrall") == world.find_player("THRALL")
        assert world.find_player("thrall") is not None

    def test_unknown(self, world: SnapshotWorld):
        assert world.find_player("Illidan") is None

    def test_offline_player(self, world: SnapshotWorld):
        handle = world.find_player("Arthas")

        assert handle is not None
        assert world.is_in_world(handle) is False

    def test_stale_handle(self, world: SnapshotWorld):
        """A player who logs out between calls reads as not found."""
        handle = world.find_player("Jaina")
        world.remove_player("Jaina")

        assert world.is_in_world(handle) is False
        with pytest.raises(NotFoundError):
            world.player_stats(handle)


class TestPlayerPayloads:
    """Section readers."""

    def test_player_data(self, world: SnapshotWorld):
        data = world.player_data(world.find_player("Thrall"))

        assert data["name"] == "Thrall"
        assert data["race"] == "Orc"
        assert data["stats"]["health"] == 25000
        assert "equipment" not in data

    def test_player_data_with_equipment(self, world: SnapshotWorld):
        data = world.player_data(world.find_player("Thrall"), include_equipment=True)

        assert len(data["equipment"]) == 2

    def test_sections(self, world: SnapshotWorld):
        handle = world.find_player("Thrall")

        assert world.player_stats(handle)["strength"] == 400
        assert world.player_equipment(handle)[0]["slot"] == "head"
        assert world.player_skills(handle) == [{"id": 373, "value": 450}]
        assert world.player_skills_full(handle)[0]["name"] == "Enhancement"
        assert world.player_quests(handle)[0]["id"] == 12000

    def test_reads_are_copies(self, world: SnapshotWorld):
        handle = world.find_player("Thrall")

        world.player_stats(handle)["health"] = 0

        assert world.player_stats(handle)["health"] == 25000

    def test_upsert_copies_input(self):
        world = SnapshotWorld()
        player = PlayerSnapshot(name="Varian", stats={"health": 10})
        world.upsert_player(player)

        player.stats["health"] = 99

        assert world.player_stats(world.find_player("Varian")) == {"health": 10}


class TestRosterAndServer:
    def test_all_players_only_online_sorted(self, world: SnapshotWorld):
        players = world.all_players()

        assert [p["name"] for p in players] == ["Jaina", "Thrall"]
        assert all("equipment" not in p for p in players)

    def test_all_players_with_equipment(self, world: SnapshotWorld):
        players = world.all_players(include_equipment=True)

        assert all("equipment" in p for p in players)

    def test_server_data(self, world: SnapshotWorld):
        data = world.server_data()

        assert data["name"] == "Azeroth"
        assert data["players_online"] == 2
        assert data["uptime_seconds"] == 120

    def test_uptime(self, world: SnapshotWorld):
        assert world.uptime_seconds() == 120


class TestLoading:
    """from_dict / from_file."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "world.json"
        path.write_text(json.dumps({
            "server": {"name": "Northrend"},
            "players": [
                {"name": "Bolvar", "stats": {"health": 5}},
                {"name": "Tirion", "in_world": False},
            ],
        }))

        world = SnapshotWorld.from_file(str(path))

        assert len(world) == 2
        assert world.server_data()["players_online"] == 1
        assert world.player_stats(world.find_player("bolvar")) == {"health": 5}

    def test_entry_without_name(self):
        with pytest.raises(ValueError):
            SnapshotWorld.from_dict({"players": [{"stats": {}}]})

    def test_empty_document(self):
        world = SnapshotWorld.from_dict({})

        assert len(world) == 0
        assert world.all_players() == []
