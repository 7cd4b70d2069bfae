"""Publish the changelists of a build to Review Board."""

from __future__ import annotations

import logging
from datetime import datetime

from rich.console import Console
from rich.markup import escape

from rblink_core.config import PublisherOptions, ReviewboardSettings
from rblink_core.decision import find_previous_review, resolve_directive
from rblink_core.errors import ConfigurationError, ProtocolError, ReviewboardError, SubmissionError
from rblink_core.models import ActionDirective, Build, ChangelistEntry, ReviewOutcome
from rblink_core.rb.post_review import build_command_line
from rblink_core.utils.patterns import compile_key_pattern, extract_key

console = Console()
logger = logging.getLogger(__name__)


def build_change_description(outcome: ReviewOutcome) -> str:
    """Text attached to the new diff of an updated review request."""
    return f"Changelist ID: {outcome.change_number}\n\nDescription: {outcome.description}"


class ReviewPublisher:
    """Creates or updates one review request per correlated changelist.

    ``client`` is a ReviewboardClient (or anything with the same methods) used
    for best-effort draft edits after post-review succeeded; ``launcher`` is a
    PostReviewLauncher. ``now`` pins the clock used for staleness checks.
    """

    def __init__(
        self,
        settings: ReviewboardSettings,
        options: PublisherOptions,
        client=None,
        launcher=None,
        now: datetime | None = None,
    ):
        self.settings = settings
        self.options = options
        self.client = client
        self.launcher = launcher
        self.now = now
        self._key_pattern = compile_key_pattern(options.key_pattern)

    # ------------------------------------------------------------------ #
    # Build level                                                          #
    # ------------------------------------------------------------------ #

    def perform(self, build: Build) -> bool:
        """Publish every changelist of ``build`` and return the step result.

        Failures only fail the step when ``fail_build_on_error`` is set; they
        are still reported either way.
        """
        console.print("[bold]---- Beginning Review Board publisher ----[/bold]")
        status = False
        try:
            if not self.settings.is_configured():
                console.print("[yellow]Review Board publisher is not configured properly, skipping action.[/yellow]")
            else:
                status = self.process_changes(build)
        except Exception:
            logger.exception("Unexpected error while publishing build #%d", build.number)

        result = "[green]SUCCESSFUL[/green]" if status else "[red]FAILURE[/red]"
        console.print(f"[bold]---- Ending Review Board publisher: {result} ----[/bold]")

        if not status and not self.options.fail_build_on_error:
            return True
        return status

    def process_changes(self, build: Build) -> bool:
        """Process each changelist in order; return False if any of them failed."""
        status = True
        for entry in build.changes:
            try:
                self.process_entry(build, entry)
            except ReviewboardError as e:
                status = False
                console.print(f"[red]{escape(str(e))}[/red]")
                logger.debug("Changelist %s failed", entry.change_number, exc_info=True)
            except Exception:
                status = False
                logger.exception("Unexpected error while publishing changelist %s", entry.change_number)
        return status

    # ------------------------------------------------------------------ #
    # Changelist level                                                     #
    # ------------------------------------------------------------------ #

    def process_entry(self, build: Build, entry: ChangelistEntry) -> ReviewOutcome | None:
        """Decide what ``entry`` needs, submit it, and record the outcome on ``build``.

        Returns None when the changelist has no correlation key or is skipped.
        """
        opts = self.options
        key = extract_key(entry.message, self._key_pattern)
        if not key:
            return None

        console.print("Publishing changes to Review Board.")
        directive = resolve_directive(
            entry.message,
            key,
            build,
            skip_unflagged=opts.skip_unflagged_changes,
            force_update_override=opts.force_update_override,
            stale_days=opts.days_before_stale_review,
            now=self.now,
        )

        if directive is ActionDirective.SKIP:
            if not opts.skip_unflagged_changes:
                console.print(
                    "Skipping review request create/update at the request of the change author.\n"
                    f"Change description: {escape(entry.message)}"
                )
            else:
                console.print("Skipping review request create/update. No action override in change description.")
            return None

        review_id = None
        if directive is ActionDirective.FORCE_NEW:
            console.print(
                "Creating a new review request at the request of the change author.\n"
                f"Change description: {escape(entry.message)}"
            )
        else:
            review_id = find_previous_review(build, key, opts.days_before_stale_review, self.now)
            if review_id is not None:
                if (
                    directive is not ActionDirective.FORCE_UPDATE
                    and opts.force_update_override
                    and opts.skip_unflagged_changes
                ):
                    console.print(
                        f"Changes for existing review request #{review_id} ignored: "
                        "description does not include RB_UPDATE.\n"
                        f"Change description: {escape(entry.message)}"
                    )
                    return None
                console.print(
                    f"Updating existing review request #{review_id}.\nChange description: {escape(entry.message)}"
                )
            elif directive is ActionDirective.FORCE_UPDATE:
                console.print(
                    f'Update requested, but no previous build recorded a review for "{escape(key)}". '
                    f"A new review request will be created instead.\nChange description: {escape(entry.message)}"
                )
            else:
                console.print(f"Creating a new review request.\nChange description: {escape(entry.message)}")

        outcome = self.submit(entry, key, review_id)
        build.record_outcome(outcome)
        if review_id is not None and outcome.review_id == review_id:
            console.print(f"Review #{review_id} updated with changes from changelist {outcome.change_number}")
        else:
            console.print(f"Review #{outcome.review_id} created from changelist {outcome.change_number}")
        return outcome

    def submit(self, entry: ChangelistEntry, key: str, review_id: int | None = None) -> ReviewOutcome:
        """Run post-review for ``entry`` and return the resulting outcome.

        With ``review_id`` the existing review request is updated. If the
        update fails on that very review request (deleted, closed, ...), the
        changelist is posted once more as a new review request.
        """
        if not key:
            raise ConfigurationError("Correlation key cannot be empty.")
        if not entry.author:
            raise ConfigurationError("Author cannot be empty.")
        if self.launcher is None:
            raise ConfigurationError("No launcher available; cannot execute post-review.")
        if review_id is not None and not entry.affected_paths:
            raise ConfigurationError(
                f"Review request #{review_id} was found for {key}, but no files were supplied to update it with."
            )

        creating = review_id is None
        args = build_command_line(
            self.settings,
            entry.author,
            change_number=entry.change_number,
            review_id=review_id,
            files=entry.affected_paths,
        )
        result = self.launcher.run(args)

        if result.succeeded:
            console.print("Successfully executed post-review command.")
            if result.review_id is None:
                raise ProtocolError(
                    "post-review succeeded but printed no review request ID. The review request may exist, "
                    "but later changes for this key will create new review requests instead of updating it."
                )
            outcome = ReviewOutcome(
                correlation_key=key,
                change_number=entry.change_number,
                review_id=result.review_id,
                author=entry.author,
                description=entry.message,
            )
            self._finish(outcome, creating)
            return outcome

        console.print("[red]Failed executing post-review command.[/red]")
        if not creating and not result.timed_out and result.error_code == review_id:
            console.print("Attempting to recover from failed submission by creating a new review request...")
            return self.submit(entry, key, None)

        raise SubmissionError(
            f"Unable to {'create' if creating else 'update'} a review request for {key}.",
            exit_code=result.exit_code,
            error_code=result.error_code,
        )

    # ------------------------------------------------------------------ #
    # Draft edits                                                          #
    # ------------------------------------------------------------------ #

    def reviewers_for(self, outcome: ReviewOutcome) -> str:
        reviewers = [outcome.author] if self.options.author_as_reviewer else []
        reviewers += self.options.default_reviewers or []
        return ",".join(reviewers)

    def _finish(self, outcome: ReviewOutcome, created: bool) -> None:
        review_id = outcome.review_id
        if self.client is None:
            logger.warning("No Review Board API client configured; review request #%d left as posted", review_id)
        else:
            if created:
                self._best_effort("set reviewers", self.client.set_reviewers, review_id, self.reviewers_for(outcome))
                self._best_effort("set bugs", self.client.set_bugs, review_id, outcome.correlation_key)
                self._best_effort(
                    "set groups", self.client.set_groups, review_id, ",".join(self.options.default_groups or [])
                )
            else:
                self._best_effort(
                    "set change description",
                    self.client.set_change_description,
                    review_id,
                    build_change_description(outcome),
                )
            if self.options.publish_reviews:
                self._best_effort("publish", self.client.publish, review_id)

        console.print(f"[green]Successfully {'created' if created else 'updated'} review request #{review_id}[/green]")

    def _best_effort(self, action: str, call, review_id: int, *args) -> bool:
        try:
            ok = call(review_id, *args)
        except Exception as e:
            # The review request is already posted; a failed draft edit must not undo that.
            logger.warning("Could not %s on review request #%d: %s", action, review_id, e)
            ok = False
        if not ok:
            console.print(f"[yellow]Could not {action} on review request #{review_id}.[/yellow]")
        return bool(ok)
