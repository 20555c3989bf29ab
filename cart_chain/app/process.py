from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass

from chainkit import ChainExecutor, Continue, StepOutcome, UnknownStepError

from cart_chain.foundation.config_io import ConfigSource, load_config
from cart_chain.foundation.logging_utils import close_logger, setup_operational_logger
from cart_chain.framework.cart import Cart, dump_cart, load_cart
from cart_chain.framework.config import AppConfig, log_config_warnings
from cart_chain.impl.gift_steps import STEP_CATALOG


def build_executor(cfg: AppConfig, *, logger: logging.Logger | None = None) -> ChainExecutor:
    executor = ChainExecutor(
        name=cfg.chain.name,
        logger=logger,
        serialize_runs=cfg.chain.serialize_runs,
    )
    for step_name in cfg.chain.steps:
        spec = STEP_CATALOG.get(step_name)
        if spec is None:
            available = tuple(STEP_CATALOG.keys())
            raise UnknownStepError(step_name, available=available)
        executor.register(spec.name, spec.builder(cfg.gift), doc=spec.doc)
    return executor


@dataclass(frozen=True)
class ProcessResult:
    outcome: StepOutcome
    run_id: str
    log_file: str | None
    config_source: ConfigSource | None = None

    @property
    def cart(self) -> Cart | None:
        if isinstance(self.outcome, Continue):
            return self.outcome.document
        return None


async def process_cart(
    cart: Cart,
    cfg: AppConfig,
    *,
    logger: logging.Logger,
    timeout: float | None = None,
) -> StepOutcome:
    executor = build_executor(cfg, logger=logger)
    logger.info(
        "Processing cart %s through chain %s (%s)",
        cart.token,
        executor.name,
        ", ".join(executor.registry.names()) or "<no steps>",
    )
    if timeout is None:
        return await executor.run_outcome(cart)
    return await asyncio.wait_for(executor.run_outcome(cart), timeout=timeout)


def process_cart_file(
    cart_path: str,
    *,
    config_path: str | None = None,
    output_path: str | None = None,
    timeout: float | None = None,
) -> ProcessResult:
    cfg_dict, source = load_config(config_path=config_path)
    cfg, warnings = AppConfig.from_dict(cfg_dict)

    run_id = uuid.uuid4().hex[:12]
    logger, log_file = setup_operational_logger(cfg.logging.log_dir, run_id, level=cfg.logging.level)
    try:
        logger.info("%s starting in %s mode", cfg.app.name, cfg.app.environment)
        logger.info("Config loaded: %s", source.describe())
        log_config_warnings(logger, warnings)

        cart = load_cart(cart_path)
        try:
            outcome = asyncio.run(process_cart(cart, cfg, logger=logger, timeout=timeout))
        except asyncio.TimeoutError:
            logger.error("Chain %s timed out after %ss", cfg.chain.name, timeout)
            raise

        if isinstance(outcome, Continue):
            if output_path:
                dump_cart(outcome.document, output_path)
                logger.info("Wrote processed cart to %s", output_path)
        else:
            logger.info("Cart %s was not processed: %s", cart.token, outcome.reason or "vetoed")
        return ProcessResult(
            outcome=outcome, run_id=run_id, log_file=log_file, config_source=source
        )
    finally:
        close_logger(logger)
