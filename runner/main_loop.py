"""
DCA Executor Runner: Main Loop

Composition root. Wires config, ledger client, execution core, alerting,
metrics, the control server and the scheduler, then runs until signalled.

Flow per cycle (see core/cycle_runner.py):
1. Read each enabled account's on-chain state
2. Evaluate readiness
3. Build the adapter-specific swap plan
4. Submit (or dry-run) with bounded retries
"""

import logging
import os
import signal
import sys
import threading
from typing import List, Optional

from core.account_reader import AccountStateReader
from core.constants import load_constants
from core.cycle_runner import CycleRunner
from core.exceptions import ConfigLoadError
from core.ledger import LedgerClient, SuiRpcClient, load_signer
from core.models import ExecutionResult
from core.submitter import Submitter
from core.swap_builder import SwapPlanBuilder
from infra.alerting import AlertService
from infra.control_server import ControlServer
from infra.logging_setup import configure_logging
from infra.metrics import MetricsRecorder
from runner.scheduler import Scheduler
from tools.config_validator import DEFAULT_CONFIG_PATH, ConfigStore, validate_config_file

logger = logging.getLogger(__name__)


class ExecutorLoop:
    """
    Main executor orchestrator.

    Responsibilities:
    - Load config
    - Build the execution core around one ledger client
    - Run scheduled cycles and serve the control surface
    - Shut down cleanly on SIGINT/SIGTERM
    """

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, ledger: Optional[LedgerClient] = None):
        self.config_store = ConfigStore(config_path)
        config = self.config_store.current

        log_cfg = config.logging
        configure_logging(level=log_cfg.level, file=log_cfg.file, json_format=log_cfg.json_format)
        logger.info(
            f"Starting DCA executor version={config.version} network={config.network} "
            f"accounts={len(config.accounts)} dry_run={config.execution.dry_run}"
        )

        self.object_ids = load_constants()

        if ledger is None:
            signer = load_signer(
                config.delegatee.signer_factory,
                private_key_env_var=config.delegatee.private_key_env_var,
                private_key_path=config.delegatee.private_key_path,
            )
            ledger = SuiRpcClient.for_network(
                config.network,
                rpc_url=config.rpc_url,
                timeout=config.execution.rpc_timeout_seconds,
                signer=signer,
            )
        self.ledger = ledger

        signer_address = ledger.signer_address
        if signer_address and config.delegatee.address not in ("0x0", signer_address):
            logger.warning(
                f"Configured delegatee {config.delegatee.address} differs from signer address {signer_address}"
            )

        self.metrics = MetricsRecorder(enabled=config.metrics.enabled, port=config.metrics.port)
        self.metrics.start()

        self.runner = CycleRunner(
            reader=AccountStateReader(ledger),
            builder=SwapPlanBuilder(signer_address, self.object_ids),
            submitter=Submitter(ledger),
            execution_config=config.execution,
            metrics=self.metrics,
        )
        self.alerts = AlertService.from_config(config.alerts)
        self.scheduler = Scheduler(
            runner=self.runner,
            config_store=self.config_store,
            alerts=self.alerts,
            metrics=self.metrics,
        )

        self.control_server: Optional[ControlServer] = None
        if config.health_check.enabled:
            self.control_server = ControlServer(
                port=config.health_check.port,
                scheduler=self.scheduler,
                config_store=self.config_store,
                health_path=config.health_check.path,
            )

        self._stopped = threading.Event()

    def run_once(self) -> List[ExecutionResult]:
        return self.scheduler.run_once() or []

    def run_forever(self) -> None:
        signal.signal(signal.SIGINT, self._handle_stop)
        signal.signal(signal.SIGTERM, self._handle_stop)

        if self.control_server:
            self.control_server.start()
        self.scheduler.start()
        logger.info("Executor running. Press Ctrl+C to stop.")

        self._stopped.wait()
        self.shutdown()

    def _handle_stop(self, signum, _frame) -> None:
        logger.warning(f"Received {signal.Signals(signum).name}, shutting down...")
        self._stopped.set()

    def shutdown(self) -> None:
        self.scheduler.stop()
        if self.control_server:
            self.control_server.stop()
        logger.info("Executor stopped cleanly.")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point"""
    import argparse

    parser = argparse.ArgumentParser(description="DCA Executor")
    parser.add_argument(
        "--config",
        default=os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH),
        help="Path to executor.yaml (default: $CONFIG_PATH or config/executor.yaml)",
    )
    parser.add_argument("--once", action="store_true", help="Run one cycle and exit")
    parser.add_argument("--validate", action="store_true", help="Validate the config file and exit")
    args = parser.parse_args(argv)

    if args.validate:
        errors = validate_config_file(args.config)
        for idx, error in enumerate(errors, start=1):
            print(f"{idx:>2}. {error}", file=sys.stderr)
        if not errors:
            print(f"{args.config}: OK")
        return 1 if errors else 0

    try:
        loop = ExecutorLoop(config_path=args.config)
    except ConfigLoadError as e:
        print(str(e), file=sys.stderr)
        for error in e.errors:
            print(f"  - {error}", file=sys.stderr)
        return 2

    if args.once:
        results = loop.run_once()
        return 1 if any(not r.success for r in results) else 0

    loop.run_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
