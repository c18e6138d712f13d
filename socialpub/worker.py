"""
Periodic trigger.

Runs the due-post sweep and the batch token refresh on fixed intervals with
APScheduler. Each run builds its own pipeline and closes it afterwards.
"""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler

from config.settings import Settings, settings as default_settings
from socialpub.errors import ConfigurationError
from socialpub.pipeline import Pipeline

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "social_sweep"
REFRESH_JOB_ID = "meta_token_refresh"


def run_sweep(cfg: Optional[Settings] = None) -> None:
    with Pipeline.from_settings(cfg) as pipeline:
        summary = pipeline.sweeper.run()
    if summary.processed:
        logger.info(
            "Scheduled sweep: %d processed, %d published, %d failed",
            summary.processed,
            summary.succeeded,
            summary.failed,
        )


def run_token_refresh(cfg: Optional[Settings] = None) -> None:
    with Pipeline.from_settings(cfg) as pipeline:
        try:
            summary = pipeline.refresher.refresh_expiring()
        except ConfigurationError as exc:
            logger.warning("Token refresh skipped: %s", exc)
            return
    logger.info("Scheduled token refresh: %d of %d refreshed", summary.refreshed, summary.total)


def add_jobs(scheduler: BaseScheduler, cfg: Optional[Settings] = None) -> BaseScheduler:
    """Register the sweep and refresh interval jobs on ``scheduler``."""
    cfg = cfg or default_settings
    scheduler.add_job(
        run_sweep,
        "interval",
        minutes=cfg.sweep_interval_minutes,
        id=SWEEP_JOB_ID,
        kwargs={"cfg": cfg},
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        run_token_refresh,
        "interval",
        hours=cfg.token_refresh_interval_hours,
        id=REFRESH_JOB_ID,
        kwargs={"cfg": cfg},
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler


def start(cfg: Optional[Settings] = None) -> None:
    """Block forever, running the jobs. Stops on Ctrl+C."""
    cfg = cfg or default_settings
    scheduler = add_jobs(BlockingScheduler(timezone="UTC"), cfg)
    logger.info(
        "Worker started: sweep every %d min, token refresh every %d h",
        cfg.sweep_interval_minutes,
        cfg.token_refresh_interval_hours,
    )
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Worker stopped")
