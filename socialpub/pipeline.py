"""
Wiring: builds stores, adapters, publisher, sweeper and refresher from
:class:`config.settings.Settings`.

This is the only place that reads settings; every component below takes its
configuration through its constructor.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional

from config.settings import Settings, settings as default_settings
from socialpub.connections.store import ConnectionStore
from socialpub.posts.service import PostService
from socialpub.posts.store import PostStore
from socialpub.publish.facebook import FacebookAdapter
from socialpub.publish.graph import GraphClient
from socialpub.publish.instagram import InstagramAdapter
from socialpub.publish.publisher import Publisher
from socialpub.publish.scheduler import DuePostSweeper
from socialpub.tokens.refresher import TokenRefresher


@dataclass
class Pipeline:
    posts: PostStore
    connections: ConnectionStore
    graph: GraphClient
    service: PostService
    publisher: Publisher
    sweeper: DuePostSweeper
    refresher: TokenRefresher

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "Pipeline":
        cfg = cfg or default_settings
        cfg.ensure_data_dir()

        posts = PostStore(cfg.database_path)
        connections = ConnectionStore(cfg.database_path)
        graph = GraphClient(cfg.graph_base_url, timeout=cfg.http_timeout)

        adapters = [
            InstagramAdapter(
                graph,
                video_wait=cfg.video_processing_mode,
                video_delay=cfg.video_processing_delay,
                poll_interval=cfg.video_poll_interval,
                poll_timeout=cfg.video_poll_timeout,
            ),
            FacebookAdapter(graph),
        ]
        publisher = Publisher(posts, connections, adapters)

        return cls(
            posts=posts,
            connections=connections,
            graph=graph,
            service=PostService(posts),
            publisher=publisher,
            sweeper=DuePostSweeper(posts, publisher),
            refresher=TokenRefresher(
                graph,
                connections,
                app_id=cfg.meta_app_id,
                app_secret=cfg.meta_app_secret,
                horizon=dt.timedelta(days=cfg.token_refresh_horizon_days),
            ),
        )

    def close(self) -> None:
        self.graph.close()
        self.posts.close()
        self.connections.close()

    def __enter__(self) -> "Pipeline":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
