"""S3 utilities: path parsing, bucket region lookup and client construction.

Provides helpers for:
- S3 path and scheme parsing
- Resolving the region a bucket lives in
- Building region-correct, credentialed S3 clients
"""

import logging
from typing import Any, Optional

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from hive_replica.config import CopierOptions, Security
from hive_replica.credentials import CredentialChain, CredentialChainBuilder
from hive_replica.errors import RegionResolutionError

logger = logging.getLogger(__name__)

S3_SCHEMES = ("s3", "s3a", "s3n")

US_STANDARD_REGION = "us-east-1"
# get_bucket_location reports the US Standard region with these values.
LEGACY_US_STANDARD_MARKERS = (None, "", "US")
# Other legacy location constraints and the region they stand for.
LEGACY_LOCATION_CONSTRAINTS = {"EU": "eu-west-1"}


def is_s3_scheme(scheme: Optional[str]) -> bool:
    """Return True if scheme is one of s3, s3a or s3n (any case)."""
    if not scheme:
        return False
    return scheme.lower() in S3_SCHEMES


def parse_s3_path(s3_path: str) -> tuple[str, str]:
    """Parse S3 path into bucket and key.

    Args:
        s3_path: Full S3 path (s3://bucket/key, s3a:// and s3n:// also accepted).

    Returns:
        Tuple of (bucket, key).

    Raises:
        ValueError: If path is not a valid S3 path.
    """
    scheme, sep, rest = s3_path.partition("://")
    if not sep or not is_s3_scheme(scheme):
        raise ValueError(f"Invalid S3 path: {s3_path}")

    parts = rest.split("/", 1)
    bucket = parts[0]
    key = parts[1] if len(parts) > 1 else ""

    if not bucket:
        raise ValueError(f"Invalid S3 path: {s3_path}")

    return bucket, key


def normalize_region(location_constraint: Optional[str]) -> str:
    """Map a bucket location constraint to a region name.

    S3 has no "us-east-1" location constraint: buckets there report the legacy
    US Standard marker. Old Ireland buckets report "EU". Both are translated to
    the region id clients are built with. Every other value is returned
    unchanged.
    """
    if location_constraint in LEGACY_US_STANDARD_MARKERS:
        return US_STANDARD_REGION
    return LEGACY_LOCATION_CONSTRAINTS.get(location_constraint, location_constraint)


class StorageRegionResolver:
    """Resolves the region of an S3 bucket with a get_bucket_location call."""

    def region_for_bucket(self, client: Any, bucket: str) -> str:
        """Return the normalized region of bucket.

        Raises:
            RegionResolutionError: If the lookup fails for any reason.
        """
        try:
            response = client.get_bucket_location(Bucket=bucket)
            location_constraint = response.get("LocationConstraint")
        except (ClientError, BotoCoreError) as e:
            raise RegionResolutionError(f"Could not get location of bucket {bucket}: {e}") from e
        except (AttributeError, TypeError) as e:
            raise RegionResolutionError(f"Unexpected location response for bucket {bucket}: {e}") from e
        return normalize_region(location_constraint)

    def region_for_uri(self, client: Any, uri: str) -> str:
        try:
            bucket, _ = parse_s3_path(uri)
        except ValueError as e:
            raise RegionResolutionError(str(e)) from e
        return self.region_for_bucket(client, bucket)


class S3ClientFactory:
    """Builds credentialed, region-correct S3 clients.

    A region-agnostic client is built first and used to look up the target
    bucket's region, then a client for that region is returned. If the
    lookup fails the region-agnostic client is returned instead.

    Args:
        security: Shared security settings used for the credential chain.
        conf: Base configuration passed to the CredentialChainBuilder.
        region_resolver: Resolver for bucket regions.
    """

    def __init__(
        self,
        security: Optional[Security] = None,
        conf: Optional[dict[str, Any]] = None,
        region_resolver: Optional[StorageRegionResolver] = None,
    ):
        self.credential_chain_builder = CredentialChainBuilder(security, conf)
        self.region_resolver = region_resolver or StorageRegionResolver()

    def new_instance(self, uri: str, copier_options: Optional[CopierOptions] = None) -> Any:
        copier_options = copier_options or CopierOptions()
        credential_chain = self._credential_chain(copier_options)
        return self._new_s3_client(uri, copier_options, credential_chain)

    def new_global_instance(self, copier_options: Optional[CopierOptions] = None) -> Any:
        """Build only the region-agnostic client, without a bucket lookup."""
        copier_options = copier_options or CopierOptions()
        credential_chain = self._credential_chain(copier_options)
        return self._new_global_client(copier_options, credential_chain)

    def _credential_chain(self, copier_options: CopierOptions) -> CredentialChain:
        # The STS token exchange for an assumed role gets the same timeouts as S3 calls.
        return self.credential_chain_builder.build(
            copier_options.assumed_role,
            copier_options.assumed_role_credential_duration,
            sts_config=Config(
                connect_timeout=copier_options.connect_timeout,
                read_timeout=copier_options.read_timeout,
            ),
        )

    def _new_s3_client(self, uri: str, copier_options: CopierOptions, credential_chain: CredentialChain) -> Any:
        logger.debug(f"Trying to get a client for uri '{uri}'")
        global_client = self._new_global_client(copier_options, credential_chain)
        try:
            bucket_region = self.region_resolver.region_for_uri(global_client, uri)
        except Exception as e:
            logger.warning(f"Using global (non region specific) client for {uri}: {e}", exc_info=True)
            return global_client
        logger.debug(f"Bucket region: {bucket_region}")
        return self._new_regional_client(bucket_region, copier_options, credential_chain)

    def _client_config(self, copier_options: CopierOptions) -> Config:
        return Config(
            max_pool_connections=copier_options.max_connections,
            connect_timeout=copier_options.connect_timeout,
            read_timeout=copier_options.read_timeout,
        )

    def _new_global_client(self, copier_options: CopierOptions, credential_chain: CredentialChain) -> Any:
        session = credential_chain.session()
        return session.client(
            "s3",
            region_name=US_STANDARD_REGION,
            endpoint_url=copier_options.endpoint_for(None),
            config=self._client_config(copier_options),
        )

    def _new_regional_client(
        self,
        region: str,
        copier_options: CopierOptions,
        credential_chain: CredentialChain,
    ) -> Any:
        session = credential_chain.session()
        endpoint = copier_options.endpoint_for(region)
        if endpoint is not None:
            logger.debug(f"Using endpoint {endpoint} for region {region}")
            return session.client(
                "s3",
                region_name=region,
                endpoint_url=endpoint,
                config=self._client_config(copier_options),
            )
        return session.client("s3", region_name=region, config=self._client_config(copier_options))
