"""
Tests for the console summary, the charts, and the interactive entry point.
"""

import random
from pathlib import Path

import form_groups
from conftest import make_surveyed, make_unsurveyed
from form_groups import Group, create_visualizations, main, summarise


def sample_results():
    return {
        1: [
            Group(tuple(make_surveyed(f"a{i}") for i in range(4))),
            Group(tuple(make_surveyed(f"b{i}") for i in range(3))),
        ],
        2: [Group(tuple(make_unsurveyed(f"n{i}", section=2) for i in range(4)))],
    }


class TestSummarise:

    def test_summarise_when_groups_then_prints_scores_and_members(self, capsys):
        summarise(sample_results())
        out = capsys.readouterr().out

        assert "Total students assigned: 11" in out
        assert "Total groups created: 3" in out
        assert "Group 0: s=1 h=0" in out
        assert "Group 1: s=1 h=10000" in out
        assert "Group 2: s=2 h=0" in out
        assert "a0@umich.edu A0: bg(3) conf(3)" in out
        assert "n3@umich.edu" in out
        assert "Groups with no penalty: 1 / 2" in out

    def test_summarise_when_no_groups_then_says_so(self, capsys):
        summarise({1: []})
        assert "No groups were created" in capsys.readouterr().out


class TestVisualizations:

    def test_visualizations_when_groups_then_two_charts_saved(self, tmp_path):
        saved = create_visualizations(sample_results(), output_prefix=str(tmp_path / "run"))
        assert [Path(p).name for p in saved] == [
            "run_penalties_by_section.png",
            "run_background_by_section.png",
        ]
        assert all(Path(p).stat().st_size > 0 for p in saved)

    def test_visualizations_when_no_survey_answers_then_only_penalty_chart(self, tmp_path):
        results = {2: sample_results()[2]}
        saved = create_visualizations(results, output_prefix=str(tmp_path / "run"))
        assert [Path(p).name for p in saved] == ["run_penalties_by_section.png"]

    def test_visualizations_when_no_groups_then_nothing_saved(self, tmp_path):
        assert create_visualizations({}, output_prefix=str(tmp_path / "run")) == []


class TestMain:

    def test_main_when_roster_missing_then_reports_error(self, monkeypatch, capsys, tmp_path):
        monkeypatch.setattr(form_groups, "ROSTER_FILE", str(tmp_path / "missing.csv"))
        monkeypatch.setattr("builtins.input", lambda prompt: "")

        main()

        assert "Error reading input file" in capsys.readouterr().out

    def test_main_when_inputs_present_then_groups_reported(self, monkeypatch, capsys, tmp_path):
        roster = tmp_path / "roster.csv"
        survey = tmp_path / "survey.csv"
        lines = ["uniqname,Name,section"] + [f"u{i},User {i},{1 + i % 2}" for i in range(16)]
        roster.write_text("\n".join(lines) + "\n", encoding="utf-8")
        survey.write_text(
            "email,preferred_name,previous_experience,confidence,"
            "pref_less_comfortable,pref_fast_pace,pref_retake,pref_plus_12\n"
            "u0@umich.edu,Zero,3,3,FALSE,FALSE,FALSE,TRUE\n"
            "ghost@umich.edu,Ghost,3,3,FALSE,FALSE,FALSE,FALSE\n",
            encoding="utf-8",
        )
        monkeypatch.setattr(form_groups, "ROSTER_FILE", str(roster))
        monkeypatch.setattr(form_groups, "SURVEY_FILE", str(survey))
        monkeypatch.setattr(form_groups, "N_RESTARTS", 2)
        answers = iter(["n", "2", "17"])
        monkeypatch.setattr("builtins.input", lambda prompt: next(answers))
        monkeypatch.chdir(tmp_path)
        random.seed(0)

        main()

        out = capsys.readouterr().out
        assert "Found 16 students in 2 sections." in out
        assert "Student not in roster: ghost@umich.edu" in out
        assert "Forming groups for section 1..." in out
        assert "Forming groups for section 2..." in out
        assert "Total students assigned: 16" in out
        assert "(+12)" in out
        assert (tmp_path / "groups_penalties_by_section.png").exists()
