"""publish command — post the changelists of a build to Review Board."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import click
import yaml
from rich.console import Console

from rblink_core.config import PublisherOptions, ReviewboardSettings
from rblink_core.errors import ConfigurationError
from rblink_core.models import Build, ChangelistEntry, ReviewOutcome
from rblink_core.publisher import ReviewPublisher
from rblink_core.rb.post_review import PostReviewLauncher
from rblink_store.models import BuildRecord, OutcomeRecord

console = Console()
logger = logging.getLogger(__name__)


def read_changes(stream) -> list[ChangelistEntry]:
    """Parse changelist entries from YAML (or JSON).

    Accepts either a list of entries or a mapping with a ``changes`` list.
    Each entry has ``change``, ``author``, ``message`` and ``files``.
    """
    data = yaml.safe_load(stream) or []
    if isinstance(data, dict):
        data = data.get("changes") or []
    if not isinstance(data, list):
        raise click.UsageError("Changes file must contain a list of changelists.")

    entries = []
    for item in data:
        if not isinstance(item, dict):
            raise click.UsageError(f"Invalid changelist entry: {item!r}")
        change = item.get("change")
        try:
            change_number = int(change) if change is not None else None
        except (TypeError, ValueError):
            raise click.UsageError(f"Change number must be numeric, got {change!r}.")
        entries.append(
            ChangelistEntry(
                author=str(item.get("author") or ""),
                message=str(item.get("message") or ""),
                affected_paths=[str(f) for f in item.get("files") or []],
                change_number=change_number,
            )
        )
    return entries


def _parse_time(value: str, number: int) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        # Epoch makes every outcome of this build stale under a staleness window.
        logger.warning("Build #%d has an unreadable timestamp %r; treating it as 1970-01-01", number, value)
        return datetime.fromtimestamp(0, timezone.utc)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def records_to_history(records: list[BuildRecord]) -> Build | None:
    """Link stored build records (oldest first) into a Build chain and return its newest build.

    The CLI owns this mapping: rblink_core has no store knowledge and
    rblink_store has no core knowledge.
    """
    head = None
    for record in records:
        outcomes = []
        for o in record.outcomes:
            try:
                outcomes.append(ReviewOutcome(o.external_id, o.change_number, o.review_id, o.author, o.description))
            except ValueError as e:
                logger.warning("Ignoring invalid outcome in build #%d: %s", record.number, e)
        timestamp = _parse_time(record.built_at, record.number)
        head = Build(number=record.number, timestamp=timestamp, outcomes=outcomes, previous=head)
    return head


def build_to_record(job: str, build: Build, succeeded: bool) -> BuildRecord:
    return BuildRecord(
        job=job,
        number=build.number,
        built_at=build.timestamp.isoformat(),
        succeeded=succeeded,
        outcomes=[
            OutcomeRecord(
                external_id=o.correlation_key,
                change_number=o.change_number,
                review_id=o.review_id,
                author=o.author,
                description=o.description,
            )
            for o in build.outcomes
        ],
    )


@click.command("publish")
@click.option("--job", required=True, help="Name of the job whose build history is tracked.")
@click.option(
    "--changes",
    "changes_file",
    type=click.File("r"),
    default="-",
    show_default=True,
    help="YAML file listing the build's changelists ('-' reads stdin).",
)
@click.option("--build-number", type=int, default=None, help="Build number. Defaults to the last stored build + 1.")
@click.pass_context
def publish_cmd(ctx, job: str, changes_file, build_number: int | None):
    """Create or update Review Board review requests for a build's changelists.

    Changelists whose description starts with a correlation key (see
    `key_pattern`) update the review request an earlier build created for the
    same key, or create a new one. Authors can override this with RB_SKIP,
    RB_NEW, RB_UPDATE or RB_NONE in the description.

    \b
    Environment variables:
      REVIEWBOARD_USERNAME   Overrides `username` in the config file
      REVIEWBOARD_PASSWORD   Review Board password (or use ~/.reviewboardrc)
      GITHUB_TOKEN           Required with `store: gist`
    """
    from rblink_core.rb.api import ReviewboardClient

    config = ctx.obj["config"]
    store = ctx.obj["store"]

    settings = ReviewboardSettings.from_config(config)
    try:
        options = PublisherOptions.from_config(config)
    except ConfigurationError as e:
        raise click.UsageError(f"Invalid .rblink.yml: {e}")
    if not settings.url:
        raise click.UsageError("No Review Board URL configured. Set `url` in .rblink.yml.")
    if not options.key_pattern:
        console.print("[yellow]No key_pattern configured; no changelist will be published.[/yellow]")

    entries = read_changes(changes_file)
    records = store.list_builds(job)
    if build_number is None:
        build_number = records[-1].number + 1 if records else 1

    build = Build(
        number=build_number,
        changes=entries,
        previous=records_to_history([r for r in records if r.number < build_number]),
    )
    # Re-publishing a build keeps what its earlier run recorded.
    rerun = records_to_history([r for r in records if r.number == build_number])
    if rerun is not None:
        build.outcomes.extend(rerun.outcomes)
    client = ReviewboardClient(settings.url, settings.username or "", settings.password or "")
    publisher = ReviewPublisher(
        settings,
        options,
        client=client,
        launcher=PostReviewLauncher(timeout=settings.command_timeout),
    )
    try:
        succeeded = publisher.perform(build)
    finally:
        client.close()

    store.save(build_to_record(job, build, succeeded))
    keep = config.get("keep_builds")
    if keep:
        store.prune(job, int(keep))

    console.print(f"Build #{build.number}: {len(build.outcomes)} review request(s) created or updated.")
    if not succeeded:
        ctx.exit(1)
