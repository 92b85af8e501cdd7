"""
Tests for the command-line entry point.

Use cases are patched at the composition root; nothing touches the network.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from ascendancy import cli
from ascendancy.application.trading.dtos import RunTradingCycleCommand, ServiceStatus

DEPS = "ascendancy.interfaces.trading.dependencies"


class TestParser:
    """Tests for argument parsing."""

    def test_run_cycle_arguments(self) -> None:
        args = cli.build_parser().parse_args(
            ["run-cycle", "--agent-id", "a1", "--date", "2024-03-15"]
        )

        assert args.func is cli.cmd_run_cycle
        assert args.agent_id == "a1"
        assert args.date == date(2024, 3, 15)

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestCommands:
    """Tests for exit codes."""

    def test_run_cycle_success(self) -> None:
        use_case = MagicMock()
        use_case.execute.return_value = MagicMock(
            status="success", cycle_status="snapshot_saved", summary="ok", warnings=[]
        )
        args = cli.build_parser().parse_args(["run-cycle"])

        with patch(f"{DEPS}.get_run_trading_cycle_use_case", return_value=use_case):
            assert cli.cmd_run_cycle(args) == 0

        use_case.execute.assert_called_once_with(RunTradingCycleCommand())

    def test_run_cycle_failure_exits_non_zero(self) -> None:
        use_case = MagicMock()
        use_case.execute.return_value = MagicMock(
            status="error", cycle_status="data_collection_failed", summary="", warnings=["x"]
        )
        args = cli.build_parser().parse_args(["run-cycle"])

        with patch(f"{DEPS}.get_run_trading_cycle_use_case", return_value=use_case):
            assert cli.cmd_run_cycle(args) == 1

    def test_check_services(self) -> None:
        use_case = MagicMock()
        use_case.execute.return_value = [
            ServiceStatus("market_data", True),
            ServiceStatus("store", False, "OperationalError"),
        ]
        args = cli.build_parser().parse_args(["check-services"])

        with patch(f"{DEPS}.get_check_services_use_case", return_value=use_case):
            assert cli.cmd_check_services(args) == 1

    def test_run_all_agents(self) -> None:
        use_case = MagicMock()
        use_case.execute_all.return_value = [
            MagicMock(agent_id="a1", status="success", cycle_status="snapshot_saved",
                      summary="ok", warnings=[]),
            MagicMock(agent_id="a2", status="error", cycle_status="initialized",
                      summary="Cycle aborted", warnings=[]),
        ]
        args = cli.build_parser().parse_args(["run-cycle", "--all", "--date", "2024-03-15"])

        with patch(f"{DEPS}.get_run_trading_cycle_use_case", return_value=use_case):
            assert cli.cmd_run_cycle(args) == 1

        use_case.execute_all.assert_called_once_with(date(2024, 3, 15))
        use_case.execute.assert_not_called()
