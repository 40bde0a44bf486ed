#!/usr/bin/env python3
"""Crypto Briefs cron worker.

Runs the news ingestion job (RSS -> dedup -> sentiment -> Postgres) and the
blog generation job once at start-up and then every hour at fixed offsets.

    python cron_worker.py               # scheduled (default)
    python cron_worker.py --once news   # one ingestion run, then exit
    python cron_worker.py --once blog   # one blog post, then exit
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import psycopg
import schedule
from dotenv import load_dotenv

from cryptobriefs.blog.generator import BlogGenerator
from cryptobriefs.blog.job import BlogPostJob, run_brief_summary_job
from cryptobriefs.blog.publisher import BlogPublisher
from cryptobriefs.config import Config, ConfigError
from cryptobriefs.ingestion.feeds import FeedFetcher
from cryptobriefs.pipeline.news_sync import NewsSyncEngine, run_news_job
from cryptobriefs.scheduling import CronJob, register_jobs, run_forever, run_startup
from cryptobriefs.sentiment.classifier import SentimentClassifier
from cryptobriefs.storage.news_store import PostgresNewsStore
from cryptobriefs.storage.postgres_schema import ensure_news_schema

logger = logging.getLogger("cron_worker")


def configure_logging(level: str = "INFO", log_file: Optional[str] = "cron_worker.log") -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


@dataclass
class Worker:
    config: Config
    jobs: Dict[str, CronJob] = field(default_factory=dict)


def build_worker(config: Config) -> Worker:
    """Wire every component from the config; the blog jobs are optional."""
    worker = Worker(config=config)

    fetcher = FeedFetcher(feeds=config.feed_urls, item_limit=config.feed_item_limit, timeout=config.feed_timeout)
    engine = NewsSyncEngine(
        store=PostgresNewsStore(config.pg_dsn),
        classifier=SentimentClassifier.from_config(config),
        max_articles=config.max_articles_per_run,
        max_workers=config.upsert_concurrency,
    )
    worker.jobs["insert_news"] = CronJob("insert_news", config.news_job_at, lambda: run_news_job(fetcher, engine))

    try:
        config.require_blog_settings()
    except ConfigError as e:
        logger.error(str(e))
    else:
        blog_job = BlogPostJob(BlogGenerator.from_config(config), BlogPublisher.from_config(config))
        worker.jobs["create_blog_post"] = CronJob("create_blog_post", config.blog_job_at, blog_job.run)

    if config.brief_summary_at:
        if config.base_api_url:
            publisher = BlogPublisher.from_config(config)
            worker.jobs["add_summary"] = CronJob(
                "add_summary", config.brief_summary_at, lambda: run_brief_summary_job(publisher)
            )
        else:
            logger.error("BRIEF_SUMMARY_AT is set but BASE_API_URL is missing; add_summary not scheduled")

    return worker


ONCE_JOBS = {"news": "insert_news", "blog": "create_blog_post", "brief": "add_summary"}


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Crypto Briefs cron worker")
    parser.add_argument("--once", choices=sorted(ONCE_JOBS), help="Run a single job now and exit.")
    args = parser.parse_args(argv)

    load_dotenv()
    try:
        config = Config.from_env()
    except ConfigError as e:
        configure_logging()
        logger.error(f"Configuration error:\n{e}")
        return 1

    configure_logging(config.log_level, config.log_file)
    try:
        ensure_news_schema(config.pg_dsn)
    except psycopg.Error as e:
        logger.error(f"Postgres unavailable: {e}")
        return 1
    worker = build_worker(config)

    if args.once:
        name = ONCE_JOBS[args.once]
        cron_job = worker.jobs.get(name)
        if cron_job is None:
            logger.error(f"{name} is not configured")
            return 1
        cron_job.body()
        return 0

    stop = threading.Event()

    def _handle_signal(signum, _frame):
        logger.info(f"Received signal {signum}, shutting down...")
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    scheduler = schedule.Scheduler()
    jobs = list(worker.jobs.values())
    register_jobs(scheduler, jobs, single_flight=config.single_flight_runs)

    logger.info("🚀 Running initial jobs...")
    run_startup(jobs)

    run_forever(scheduler, stop)
    logger.info("👋 Cron worker stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
