"""Wire services from settings and a store client for one entry-point invocation."""

from dataclasses import dataclass
from typing import Optional
import httpx
from supabase import Client
from homenest.models.queue import QueueChannel
from homenest.services.call_queue import CallQueueService
from homenest.services.email_queue import EmailQueueService
from homenest.services.lead_importer import LeadImporter
from homenest.services.lead_store import LeadStore
from homenest.services.queue_builder import QueueBuilder
from homenest.services.queue_store import QueueStore
from homenest.services.telephony_client import TelephonyClient
from homenest.services.webhook_client import WorkflowWebhookClient
from homenest.utils.config import Settings


@dataclass
class Services:
    importer: LeadImporter
    queue_builder: QueueBuilder
    email_queue: EmailQueueService
    call_queue: CallQueueService


def build_services(
    settings: Settings,
    client: Client,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Services:
    """Construct every service over one client; transport is shared by the HTTP clients."""
    lead_store = LeadStore(client)
    call_store = QueueStore(client, QueueChannel.CALL)
    email_store = QueueStore(client, QueueChannel.EMAIL)
    return Services(
        importer=LeadImporter(lead_store, settings),
        queue_builder=QueueBuilder(lead_store, call_store, email_store, settings),
        email_queue=EmailQueueService(
            email_store,
            WorkflowWebhookClient(settings, transport=transport),
            settings,
            client=client,
        ),
        call_queue=CallQueueService(
            call_store,
            lead_store,
            TelephonyClient(settings, transport=transport),
            settings,
        ),
    )
