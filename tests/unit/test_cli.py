"""
Tests for the command line entry point.
"""

import json

import pytest

from mealwise import main as cli
from mealwise.data.database import SQLitePlanRepository


class TestParseDayArgs:
    """Tests for DAY=CATEGORY parsing."""

    def test_pairs(self):
        assert cli.parse_day_args(["Monday=quick", " Tuesday = batch "]) == {
            "Monday": "quick",
            "Tuesday": "batch",
        }

    @pytest.mark.parametrize("value", ["Monday", "=quick", "Monday="])
    def test_malformed(self, value):
        with pytest.raises(ValueError):
            cli.parse_day_args([value])


class TestCommands:
    """Tests for subcommands against a temporary database."""

    @pytest.fixture(autouse=True)
    def null_llm(self, mocker):
        mocker.patch.dict("os.environ", {"USE_NULL_LLM": "true"})

    def test_household_save_and_show(self, temp_db_dir, tmp_path, capsys, sample_household):
        profile_file = tmp_path / "profile.json"
        profile_file.write_text(json.dumps(sample_household.to_dict()))

        code = cli.main(["--db-dir", temp_db_dir, "household", "fam_7", "--from-file", str(profile_file)])

        assert code == 0
        assert "Saved household fam_7" in capsys.readouterr().out
        assert SQLitePlanRepository(db_dir=temp_db_dir).get_household("fam_7").name == "The Parkers"

    def test_unknown_household(self, temp_db_dir, capsys):
        code = cli.main(["--db-dir", temp_db_dir, "household", "nobody"])
        assert code == 1
        assert "Household not found" in capsys.readouterr().out

    def test_current_without_plan(self, temp_db_dir, capsys):
        code = cli.main(["--db-dir", temp_db_dir, "current", "fam_1"])
        assert code == 1
        assert "No meal plan" in capsys.readouterr().out

    def test_plan_with_bad_day(self, temp_db_dir, sample_household, capsys):
        SQLitePlanRepository(db_dir=temp_db_dir).save_household(sample_household)
        code = cli.main(["--db-dir", temp_db_dir, "plan", "fam_1", "--day", "Monday"])
        assert code == 2

    def test_plan_with_null_provider_fails_cleanly(self, temp_db_dir, sample_household, capsys, mocker):
        """The null provider never returns a recipe, so generation fails after the budget."""
        mocker.patch("mealwise.generation.orchestrator.time.sleep")
        SQLitePlanRepository(db_dir=temp_db_dir).save_household(sample_household)

        code = cli.main(["--db-dir", temp_db_dir, "plan", "fam_1", "--day", "Monday=quick"])

        assert code == 1
        assert "couldn't generate meals" in capsys.readouterr().out

    def test_grocery(self, temp_db_dir, sample_household, sample_plan, capsys):
        repo = SQLitePlanRepository(db_dir=temp_db_dir)
        repo.save_household(sample_household)
        repo.save_plan(sample_plan)

        code = cli.main(["--db-dir", temp_db_dir, "grocery", "fam_1"])

        out = capsys.readouterr().out
        assert code == 0
        assert "Meat & Seafood:" in out
        assert "1.5 lb chicken breast" in out
