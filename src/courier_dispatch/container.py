"""Wires stores, providers, the queue and the workers together."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from supabase import Client

from .config import Settings, settings as default_settings
from .db.supabase import get_supabase_client
from .notifications.events import EventSink, build_event_sink
from .persistence.memory import InMemoryBillingStore, InMemoryOrderStore, InMemoryPartyStore, InMemoryRouteStore
from .persistence.stores import BillingStore, OrderStore, PartyStore, RouteStore
from .queue import OrderEventPublisher, QueueTransport, build_queue_transport
from .services.geo import GeoResolver, build_geo_resolver
from .services.matching import RouteMatcher
from .workers import InvoiceGenerationWorker, RouteAssignmentWorker, WorkerManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Stores:
    routes: RouteStore
    orders: OrderStore
    billings: BillingStore
    parties: PartyStore


@dataclass(slots=True)
class Container:
    config: Settings
    stores: Stores
    resolver: GeoResolver
    matcher: RouteMatcher
    transport: QueueTransport
    events: EventSink
    publisher: OrderEventPublisher
    manager: WorkerManager


def build_stores(client: Client | None = None) -> Stores:
    client = client or get_supabase_client()
    if client is None:
        logger.warning("Supabase not configured; using in-memory stores (data is lost on exit)")
        return Stores(
            routes=InMemoryRouteStore(),
            orders=InMemoryOrderStore(),
            billings=InMemoryBillingStore(),
            parties=InMemoryPartyStore(),
        )

    from .persistence.database import (
        SupabaseBillingStore,
        SupabaseOrderStore,
        SupabasePartyStore,
        SupabaseRouteStore,
    )

    return Stores(
        routes=SupabaseRouteStore(client),
        orders=SupabaseOrderStore(client),
        billings=SupabaseBillingStore(client),
        parties=SupabasePartyStore(client),
    )


def build_container(
    config: Settings | None = None,
    stores: Stores | None = None,
    resolver: GeoResolver | None = None,
    transport: QueueTransport | None = None,
    events: EventSink | None = None,
) -> Container:
    config = config or default_settings
    stores = stores or build_stores()
    resolver = resolver or build_geo_resolver(config)
    transport = transport or build_queue_transport(config)
    events = events or build_event_sink(config)
    matcher = RouteMatcher(resolver, stores.routes, config)

    workers = {
        "routeAssignment": RouteAssignmentWorker(transport, stores.orders, stores.parties, matcher, events, config),
        "invoiceGeneration": InvoiceGenerationWorker(
            transport, stores.orders, stores.billings, stores.parties, events, config
        ),
    }
    return Container(
        config=config,
        stores=stores,
        resolver=resolver,
        matcher=matcher,
        transport=transport,
        events=events,
        publisher=OrderEventPublisher(transport, config),
        manager=WorkerManager(workers, transport),
    )
