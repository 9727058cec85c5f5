"""Single verification interface over the supported fitness providers."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Callable

import httpx
import yaml
from pydantic import BaseModel, ConfigDict

from vaada.services.ledger.models import GoalKind

from .client import FitnessHttpClient
from .exceptions import ProviderError, ProviderNotConnectedError
from .fitbit import query_fitbit, refresh_fitbit_token
from .models import (
    Achieved,
    Measurement,
    ProviderKind,
    TokenGrant,
    Unavailable,
    VerificationResult,
)
from .strava import query_strava, refresh_strava_token

if TYPE_CHECKING:
    from vaada.storage.credentials import CredentialStore

logger = logging.getLogger(__name__)

RefreshFn = Callable[[FitnessHttpClient, str, str, str], Awaitable[TokenGrant]]
QueryFn = Callable[
    [FitnessHttpClient, str, datetime, datetime, GoalKind], Awaitable[Measurement]
]


class ProviderSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    refresh: RefreshFn
    query: QueryFn
    supports: frozenset[GoalKind]


PROVIDERS: dict[ProviderKind, ProviderSpec] = {
    ProviderKind.STRAVA: ProviderSpec(
        refresh=refresh_strava_token,
        query=query_strava,
        supports=frozenset({GoalKind.DISTANCE}),
    ),
    ProviderKind.FITBIT: ProviderSpec(
        refresh=refresh_fitbit_token,
        query=query_fitbit,
        supports=frozenset({GoalKind.DISTANCE, GoalKind.STEPS}),
    ),
}

# Preference when a subject has connected more than one provider
PROVIDER_ORDER = (ProviderKind.STRAVA, ProviderKind.FITBIT)


class VerificationAdapter:
    """Measures a subject's achieved value; never raises into the caller."""

    def __init__(
        self,
        http: FitnessHttpClient,
        store: CredentialStore,
        client_secrets: dict[ProviderKind, tuple[str, str]],
    ):
        self.http = http
        self.store = store
        self.client_secrets = client_secrets

    def select_provider(self, subject: str, kind: GoalKind) -> ProviderKind:
        connected = self.store.get(subject)
        if not connected:
            raise ProviderNotConnectedError(
                "No fitness tracker connected for this wallet"
            )
        for provider in PROVIDER_ORDER:
            if provider in connected and kind in PROVIDERS[provider].supports:
                return provider
        raise ProviderNotConnectedError(
            f"No connected provider can measure {kind.unit} "
            f"(connected: {', '.join(p.value for p in connected)})"
        )

    async def verify(
        self,
        subject: str,
        window_start: datetime,
        window_end: datetime,
        kind: GoalKind,
    ) -> VerificationResult:
        provider: ProviderKind | None = None
        try:
            provider = self.select_provider(subject, kind)
            measurement = await self._measure(
                subject, provider, window_start, window_end, kind
            )
        except ProviderError as e:
            logger.warning(f"Verification unavailable for {subject}: {e}")
            return Unavailable(reason=str(e), provider=provider)
        except httpx.HTTPError as e:
            logger.warning(f"Verification unavailable for {subject}: {e}")
            return Unavailable(reason=f"HTTP error: {e}", provider=provider)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Malformed provider data for {subject}: {e}")
            return Unavailable(reason=f"Malformed provider data: {e}", provider=provider)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Credential store error for {subject}: {e}")
            return Unavailable(reason=f"Credential store error: {e}", provider=provider)

        logger.info(
            f"Verified {subject} via {provider.value}: "
            f"{measurement.value:.2f} {kind.unit} "
            f"({measurement.records_counted} records)"
        )
        return Achieved(
            value=measurement.value,
            provider=provider,
            records_counted=measurement.records_counted,
        )

    async def _measure(
        self,
        subject: str,
        provider: ProviderKind,
        window_start: datetime,
        window_end: datetime,
        kind: GoalKind,
    ) -> Measurement:
        spec = PROVIDERS[provider]
        credential = self.store.get(subject)[provider]
        client_id, client_secret = self.client_secrets.get(provider, ("", ""))

        grant = await spec.refresh(
            self.http, credential.refresh_token, client_id, client_secret
        )
        # Both providers rotate refresh tokens; the old one is now dead
        if grant.refresh_token != credential.refresh_token:
            self.store.rotate(subject, provider, grant.refresh_token)

        return await spec.query(
            self.http, grant.access_token, window_start, window_end, kind
        )
