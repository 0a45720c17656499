"""AWS credential chains for S3 clients.

A chain is an ordered list of botocore credential providers placed ahead of
botocore's default resolver (environment, shared files, container and
instance metadata). Credentials are resolved by the botocore session each
time a client is built from the chain; nothing is cached here.

Precedence when building a chain:
1. An assumed role, exchanged through STS on first use.
2. A configured secret store (an AWS shared credentials file).
3. The default environment/instance identity chain.
"""

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import boto3
import botocore.session
from botocore.config import Config
from botocore.credentials import (
    AssumeRoleCredentialFetcher,
    CredentialProvider,
    CredentialResolver,
    DeferredRefreshableCredentials,
    SharedCredentialProvider,
    create_credential_resolver,
)

from hive_replica.config import DEFAULT_ASSUME_ROLE_CREDENTIAL_DURATION, Security

logger = logging.getLogger(__name__)

ASSUME_ROLE_PROPERTY_NAME = "hive_replica.assume_role.arn"
ASSUME_ROLE_SESSION_DURATION_SECONDS_PROPERTY_NAME = "hive_replica.assume_role.session_duration_seconds"
ASSUME_ROLE_SESSION_NAME = "hive-replica"


class AssumeRoleCredentialProvider(CredentialProvider):
    """Credentials for an IAM role, fetched lazily from STS.

    load() never calls AWS. The STS AssumeRole exchange happens the first
    time the returned credentials are read, and again whenever they near
    expiry.

    Args:
        conf: Configuration carrying ASSUME_ROLE_PROPERTY_NAME and
            ASSUME_ROLE_SESSION_DURATION_SECONDS_PROPERTY_NAME.
        source_session: botocore session providing the identity that assumes
            the role. Defaults to a fresh session with the default chain.
        sts_config: botocore Config for the STS client, carrying the
            connect/read timeouts of the token exchange.
    """

    METHOD = "assume-role-config"
    CANONICAL_NAME = "AssumeRoleConfig"

    def __init__(
        self,
        conf: dict[str, Any],
        source_session: Optional[botocore.session.Session] = None,
        sts_config: Optional[Config] = None,
    ):
        super().__init__()
        role_arn = conf.get(ASSUME_ROLE_PROPERTY_NAME)
        if not role_arn:
            raise ValueError(f"Missing required configuration property '{ASSUME_ROLE_PROPERTY_NAME}'")
        self.role_arn = role_arn
        self.duration_seconds = int(
            conf.get(
                ASSUME_ROLE_SESSION_DURATION_SECONDS_PROPERTY_NAME,
                DEFAULT_ASSUME_ROLE_CREDENTIAL_DURATION,
            )
        )
        self._source_session = source_session
        self._sts_config = sts_config
        self._fetcher: Optional[AssumeRoleCredentialFetcher] = None

    def _get_fetcher(self) -> AssumeRoleCredentialFetcher:
        if self._fetcher is None:
            source_session = self._source_session or botocore.session.Session()
            client_creator = source_session.create_client
            if self._sts_config is not None:
                client_creator = functools.partial(client_creator, config=self._sts_config)
            self._fetcher = AssumeRoleCredentialFetcher(
                client_creator=client_creator,
                source_credentials=source_session.get_credentials(),
                role_arn=self.role_arn,
                extra_args={
                    "RoleSessionName": ASSUME_ROLE_SESSION_NAME,
                    "DurationSeconds": self.duration_seconds,
                },
            )
        return self._fetcher

    def _refresh(self) -> dict[str, Any]:
        logger.debug(f"Assuming role {self.role_arn} for {self.duration_seconds}s")
        return self._get_fetcher().fetch_credentials()

    def load(self) -> DeferredRefreshableCredentials:
        return DeferredRefreshableCredentials(refresh_using=self._refresh, method=self.METHOD)


@dataclass
class CredentialChain:
    """Ordered credential providers, tried before botocore's defaults.

    Attributes:
        providers: Providers consulted first, in order.
        include_defaults: Whether botocore's default providers follow them.
    """

    providers: list[CredentialProvider] = field(default_factory=list)
    include_defaults: bool = True

    @property
    def method_names(self) -> list[str]:
        return [provider.METHOD for provider in self.providers]

    def session(self) -> boto3.Session:
        """Build a boto3 Session that resolves credentials through this chain."""
        botocore_session = botocore.session.Session()
        providers = list(self.providers)
        if self.include_defaults:
            providers.extend(create_credential_resolver(botocore_session).providers)
        botocore_session.register_component("credential_provider", CredentialResolver(providers=providers))
        return boto3.Session(botocore_session=botocore_session)


class CredentialChainBuilder:
    """Choose and build the credential chain for one client construction.

    Args:
        security: Shared security settings (optional secret store).
        conf: Base configuration. It is copied, never modified, when a
            role-specific configuration is derived from it.
    """

    def __init__(self, security: Optional[Security] = None, conf: Optional[dict[str, Any]] = None):
        self.security = security or Security()
        self.conf = conf or {}

    def build(
        self,
        assumed_role: Optional[str] = None,
        assumed_role_duration: int = DEFAULT_ASSUME_ROLE_CREDENTIAL_DURATION,
        sts_config: Optional[Config] = None,
    ) -> CredentialChain:
        if assumed_role is not None:
            logger.debug(f"Creating credential chain for assuming role {assumed_role}")
            role_conf = create_new_conf(self.conf, assumed_role, assumed_role_duration)
            return CredentialChain(providers=[AssumeRoleCredentialProvider(role_conf, sts_config=sts_config)])

        credential_file = self.security.credential_file
        if credential_file is not None:
            logger.debug(f"Creating credential chain with credential provider {self.security.credential_provider}")
            return CredentialChain(
                providers=[
                    SharedCredentialProvider(
                        creds_filename=credential_file,
                        profile_name=self.security.credential_profile,
                    )
                ]
            )

        logger.debug("Creating default credential provider chain")
        return CredentialChain()


def create_new_conf(conf: dict[str, Any], assumed_role: str, assumed_role_duration: int) -> dict[str, Any]:
    """Copy conf and add the role ARN and session duration to the copy."""
    new_conf = dict(conf)
    new_conf[ASSUME_ROLE_PROPERTY_NAME] = assumed_role
    new_conf[ASSUME_ROLE_SESSION_DURATION_SECONDS_PROPERTY_NAME] = assumed_role_duration
    return new_conf
