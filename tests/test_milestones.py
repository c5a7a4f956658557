"""Tests for timeline milestones."""

from datetime import date

from helpers import make_commit, make_pr

from project_wrapped.pipeline.milestones import generate_milestones


class TestGenerateMilestones:
    def test_ordered_between_period_bounds(self) -> None:
        commits = [
            make_commit("Alice", "2024-06-01"),
            make_commit("Bob", "2024-11-01"),
            make_commit("Alice", "2024-02-01", "Bootstrap repository"),
        ]

        milestones = generate_milestones(commits, [], date(2024, 1, 1), date(2024, 12, 31))

        assert milestones[0].title == "Period Start"
        assert milestones[0].date == "2024-01-01"
        assert milestones[-1].title == "Period End"
        assert milestones[-1].date == "2024-12-31"
        dates = [m.date for m in milestones]
        assert dates == sorted(dates)
        assert [m.title for m in milestones] == [
            "Period Start",
            "First Commit",
            "Halfway Point",
            "Period End",
        ]

    def test_first_commit_and_halfway(self) -> None:
        commits = [
            make_commit("Alice", "2024-06-01"),
            make_commit("Alice", "2024-02-01", "Bootstrap repository"),
            make_commit("Alice", "2024-11-01"),
        ]

        milestones = {m.title: m for m in generate_milestones(commits, [], None, None)}

        assert milestones["First Commit"].date == "2024-02-01"
        assert milestones["First Commit"].description == "Bootstrap repository"
        assert milestones["First Commit"].icon == "lightbulb"
        assert milestones["Halfway Point"].date == "2024-06-01"
        assert milestones["Halfway Point"].description == "1 commits so far"

    def test_long_message_truncated(self) -> None:
        commits = [make_commit("Alice", "2024-02-01", "x" * 80)]
        first = generate_milestones(commits, [], None, None)[0]
        assert first.description == "x" * 50

    def test_empty_message_fallback(self) -> None:
        commits = [make_commit("Alice", "2024-02-01", "")]
        first = generate_milestones(commits, [], None, None)[0]
        assert first.description == "Initial commit"

    def test_single_commit_halfway_is_first_commit(self) -> None:
        milestones = generate_milestones([make_commit("Alice", "2024-02-01")], [], None, None)
        assert [m.title for m in milestones] == ["First Commit", "Halfway Point"]
        assert milestones[1].description == "0 commits so far"

    def test_no_commits_no_bounds(self) -> None:
        assert generate_milestones([], [], None, None) == []

    def test_pull_request_threshold(self) -> None:
        pulls = [make_pr("Alice") for _ in range(100)]

        milestones = generate_milestones([], pulls, date(2024, 1, 1), date(2024, 12, 31))

        assert [m.title for m in milestones] == ["Period Start", "100 PRs Milestone", "Period End"]
        assert milestones[1].icon == "party"
        assert milestones[1].date == "2024-12-31"

    def test_below_threshold(self) -> None:
        pulls = [make_pr("Alice") for _ in range(99)]
        milestones = generate_milestones([], pulls, date(2024, 1, 1), date(2024, 12, 31))
        assert "100 PRs Milestone" not in [m.title for m in milestones]

    def test_custom_threshold(self) -> None:
        pulls = [make_pr("Alice") for _ in range(3)]
        milestones = generate_milestones([], pulls, None, date(2024, 12, 31), pr_threshold=3)
        assert milestones[0].title == "3 PRs Milestone"

    def test_same_date_keeps_generation_order(self) -> None:
        commits = [make_commit("Alice", "2024-01-01")]
        milestones = generate_milestones(commits, [], date(2024, 1, 1), date(2024, 1, 1))

        assert [m.title for m in milestones] == [
            "Period Start",
            "First Commit",
            "Halfway Point",
            "Period End",
        ]
