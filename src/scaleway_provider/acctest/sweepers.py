"""Sweepers deleting resources left behind by interrupted acceptance tests."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, List, Mapping, Optional, Tuple

from scaleway_provider.acctest.side_project import TERRAFORM_TESTS_VERSION
from scaleway_provider.api import DomainAPI, RdbAPI
from scaleway_provider.locality import all_regions, region_zones
from scaleway_provider.meta import Meta, MetaConfig, build_meta
from scaleway_provider.objectstorage import delete_object_versions, new_s3_client
from scaleway_provider.utils.context import Context
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

SweepFunc = Callable[[Meta, str], None]
MetaFactory = Callable[[str], Meta]


@dataclass(frozen=True)
class Sweeper:
    """Sweep of one resource kind, run in every region."""
    name: str
    sweep: SweepFunc
    dependencies: Tuple[str, ...] = ()


def is_test_resource(identifier: str) -> bool:
    """True for names created by tests: `tf_test*`, `tf-test*` and the like."""
    return (
        len(identifier) >= len("tf_test")
        and identifier.startswith("tf")
        and identifier[2] in ("_", "-")
        and identifier[3:7] == "test"
    )


def is_test_bucket(name: str) -> bool:
    return is_test_resource(name) or name.startswith("test-acc-scaleway")


def region_meta(region: str) -> Meta:
    """Meta of the environment credentials, defaulting to the region's first zone."""
    return build_meta(MetaConfig(terraform_version=TERRAFORM_TESTS_VERSION, force_zone=region_zones(region)[0]))


def sweep_rdb_instances(meta: Meta, region: str) -> None:
    api = RdbAPI(meta.client)
    logger.debug(f"sweeper: destroying the rdb instances in ({region})")
    for instance in api.list_instances(region):
        api.delete_instance(region, instance["id"])
        logger.info(f"sweeper: deleted rdb instance {region}/{instance['id']}")


def sweep_domain_zones(meta: Meta, region: str) -> None:
    # Zones are global; sweep them once
    if region != all_regions()[0]:
        return
    api = DomainAPI(meta.client)
    for zone in api.list_dns_zones():
        if not is_test_resource(zone.get("subdomain", "")):
            continue
        name = f"{zone['subdomain']}.{zone['domain']}"
        api.delete_dns_zone(name, zone.get("project_id"))
        logger.info(f"sweeper: deleted dns zone {name}")


def sweep_object_buckets(meta: Meta, region: str) -> None:
    s3 = new_s3_client(meta.http_session, region, meta.access_key, meta.secret_key)
    for bucket in s3.list_buckets().get("Buckets") or []:
        name = bucket["Name"]
        if not is_test_bucket(name):
            continue
        delete_object_versions(Context.background(), s3, name, True)
        s3.delete_bucket(Bucket=name)
        logger.info(f"sweeper: deleted bucket {region}/{name}")


def build_sweepers() -> Mapping[str, Sweeper]:
    """Sweepers by resource kind name; read-only."""
    sweepers = [
        Sweeper("scaleway_rdb_instance", sweep_rdb_instances),
        Sweeper("scaleway_domain_zone", sweep_domain_zones),
        Sweeper("scaleway_object_bucket", sweep_object_buckets),
    ]
    return MappingProxyType({sweeper.name: sweeper for sweeper in sweepers})


SWEEPERS = build_sweepers()


def _ordered(sweepers: Mapping[str, Sweeper], names: Iterable[str]) -> List[Sweeper]:
    ordered: List[Sweeper] = []

    def visit(name: str) -> None:
        sweeper = sweepers[name]
        if sweeper in ordered:
            return
        for dependency in sweeper.dependencies:
            visit(dependency)
        ordered.append(sweeper)

    for name in names:
        visit(name)
    return ordered


def run_sweepers(
    names: Optional[Iterable[str]] = None,
    regions: Optional[Iterable[str]] = None,
    meta_factory: MetaFactory = region_meta,
    sweepers: Mapping[str, Sweeper] = SWEEPERS,
) -> List[Tuple[str, str, Exception]]:
    """Run sweepers, dependencies first, in every region.

    A failing sweep is logged and the others still run.

    Returns:
        Failures as (sweeper name, region, error)
    """
    failures = []
    for region in regions or all_regions():
        meta = meta_factory(region)
        for sweeper in _ordered(sweepers, names or sweepers.keys()):
            try:
                sweeper.sweep(meta, region)
            except Exception as e:
                logger.error(f"sweeper {sweeper.name} failed in {region}: {e}")
                failures.append((sweeper.name, region, e))
    return failures
