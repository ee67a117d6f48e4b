"""Per-host patch state machine.

START -> PRECHECK -> UPDATE -> DECIDE_REBOOT -> (REBOOT -> WAIT_REACHABLE)?
-> ADVISORY_REBOOT_CHECK -> (REBOOT -> WAIT_REACHABLE)? -> POSTCHECK -> DONE

PRECHECK_FAILED, UPDATE_FAILED and REBOOT_TIMEOUT end the session for
that host only.
"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from core.exceptions import (
    AdvisoryCheckError,
    ConnectivityError,
    RebootTimeoutError,
    UpdateError,
)
from core.interfaces.remote_host_interface import IRemoteHost
from core.models.session import (
    HostPatchSession,
    PostAction,
    RebootOutcome,
    SessionState,
    UpdateResult,
)
from core.models.workflow import PhaseGroup
from core.services.health_check_service import HealthCheck
from core.services.package_commands import summarize_update_output, update_output_changed
from core.services.reboot_policy import (
    decide_reboot,
    interpret_advisory_exit_code,
    kernel_changed,
    normalize_kernel_version,
)

HEALTH_CHECK_PLACEHOLDER = (
    "WARNING: Post-patch health check placeholder! "
    "Customize this for YOUR applications and services."
)


class PatchService:
    """Runs the patch phases for a single host."""

    def __init__(self, health_checks: Optional[List[HealthCheck]] = None):
        self.health_checks = list(health_checks or [])
        self.logger = logging.getLogger(__name__)

    def _report(
        self, session: HostPatchSession, phase: str, message: str, level: int = logging.INFO
    ) -> None:
        line = session.report(phase, message)
        self.logger.log(level, f"{session.hostname}: {line}")

    def _fail(
        self, session: HostPatchSession, state: SessionState, phase: str, error: Exception
    ) -> None:
        message = str(error) or error.__class__.__name__
        session.fail(state, phase, message)
        self.logger.error(f"{session.hostname}: {phase} failed ({state.value}): {message}")

    async def run_session(
        self,
        host: IRemoteHost,
        session: HostPatchSession,
        groups: Sequence[PhaseGroup] = tuple(PhaseGroup),
    ) -> HostPatchSession:
        """Drive one host through the selected phase groups."""
        self._report(session, "start", f"Starting RHEL patching for {session.hostname}...")

        if PhaseGroup.PRE_PATCH in groups:
            if not await self.run_precheck(host, session):
                return session

        if PhaseGroup.PATCH in groups:
            if not await self.run_patch(host, session):
                return session

        if PhaseGroup.POST_PATCH in groups:
            await self.run_postcheck(host, session)

        session.complete()
        self._report(session, "end", f"Finished RHEL patching for {session.hostname}.")
        return session

    async def run_precheck(self, host: IRemoteHost, session: HostPatchSession) -> bool:
        """Observe the host without changing it."""
        phase = "pre_patch"
        session.transition(SessionState.PRECHECK)

        try:
            if not await host.ping():
                raise ConnectivityError(
                    f"Host {session.hostname} is not reachable", host=session.hostname
                )
            self._report(session, phase, "Connectivity and root access confirmed")

            packages = await host.gather_package_facts()
            session.facts["installed_packages"] = len(packages)
            self._report(session, phase, f"Package facts gathered: {len(packages)} packages installed")

            updates = await host.list_available_updates()
            names = [u["name"] for u in updates]
            session.facts["available_updates"] = names
            self._report(
                session,
                phase,
                f"Available updates on {session.hostname}: {', '.join(names) if names else 'None'}",
            )

            disk = await host.get_disk_space()
            session.facts["disk_space"] = disk
            self._report(session, phase, f"Disk space on {session.hostname}: {disk}")

            memory = await host.get_free_memory()
            session.facts["free_memory"] = memory
            self._report(session, phase, f"Free memory on {session.hostname}: {memory}")

            kernel = normalize_kernel_version(await host.get_kernel_version())
            session.facts["running_kernel_before"] = kernel
            self._report(session, phase, f"Current kernel on {session.hostname}: {kernel}")

            await self._capture_baseline_kernel(host, session, phase)

        except Exception as e:
            self._fail(session, SessionState.PRECHECK_FAILED, phase, e)
            return False

        return True

    async def _capture_baseline_kernel(
        self, host: IRemoteHost, session: HostPatchSession, phase: str
    ) -> None:
        """Record the newest installed kernel before any update.

        The reboot decision compares installed kernels before and after the
        update. A kernel that was already installed but is not yet running
        is left to the advisory reboot check.
        """
        session.pre_kernel = normalize_kernel_version(await host.get_installed_kernel_version())
        self._report(session, phase, f"Installed kernel before update on {session.hostname}: {session.pre_kernel}")

        running = session.facts.get("running_kernel_before")
        if running and running != session.pre_kernel:
            self._report(
                session,
                phase,
                f"Kernel {session.pre_kernel} is installed but {running} is running",
                logging.WARNING,
            )

    async def run_patch(self, host: IRemoteHost, session: HostPatchSession) -> bool:
        """Update, decide on a reboot and drain the queued post-actions."""
        phase = "patch"

        try:
            if session.pre_kernel is None:
                # Pre-check was not selected
                await self._capture_baseline_kernel(host, session, phase)

            session.transition(SessionState.UPDATE)
            session.update_result = await self.run_update(host, session)

            session.transition(SessionState.DECIDE_REBOOT)
            self._decide_reboot(session, await host.get_installed_kernel_version())

        except Exception as e:
            self._fail(session, SessionState.UPDATE_FAILED, phase, e)
            return False

        session.queue_action(PostAction.ADVISORY_REBOOT_CHECK)

        while session.pending_actions:
            action = session.pop_action()

            if action == PostAction.REBOOT:
                if not await self.reboot(host, session, session.reboot_reason or "requested"):
                    return False

            elif action == PostAction.ADVISORY_REBOOT_CHECK:
                session.transition(SessionState.ADVISORY_REBOOT_CHECK)
                if await self.advisory_reboot_check(host, session):
                    if session.queue_action(PostAction.REBOOT, "advisory check reports reboot needed"):
                        self._report(session, phase, "Advisory check requests a reboot")
                    else:
                        self._report(session, phase, "Advisory check requests a reboot; host already rebooted this session")

        return True

    async def run_update(self, host: IRemoteHost, session: HostPatchSession) -> UpdateResult:
        """Apply package updates. Re-running with nothing to update reports no changes."""
        phase = "patch"
        config = session.config

        if not config.perform_update:
            result = UpdateResult(changed=False, skipped=True, message="Update skipped (perform_update is false)")
            self._report(session, phase, f"Yum update on {session.hostname} was not needed. {result.message}")
            return result

        if config.clean_cache:
            clean = await host.clean_package_cache()
            if not clean.ok:
                raise UpdateError(
                    f"Package cache clean failed (rc={clean.rc}): {clean.stderr.strip()}",
                    host=session.hostname,
                )
            self._report(session, phase, "Package manager cache cleaned")

        upgrade = await host.upgrade_all_packages(config.disable_repos, config.enable_repos)
        if not upgrade.ok:
            raise UpdateError(
                f"Package update failed (rc={upgrade.rc}): {upgrade.stderr.strip()}",
                host=session.hostname,
            )

        result = UpdateResult(
            changed=update_output_changed(upgrade.stdout),
            message=summarize_update_output(upgrade.stdout),
        )
        self._report(
            session,
            phase,
            f"Yum update on {session.hostname} was "
            f"{'successful' if result.changed else 'not needed'}. {result.message}".strip(),
        )
        return result

    def _decide_reboot(self, session: HostPatchSession, installed_kernel: str) -> None:
        session.post_kernel = normalize_kernel_version(installed_kernel)
        explicit = session.config.default_reboot_required
        changed = kernel_changed(session.pre_kernel, session.post_kernel)
        decision = decide_reboot(session.pre_kernel, session.post_kernel, explicit)
        session.record_reboot_decision(decision)

        self._report(
            session,
            "patch",
            f"Kernel {session.pre_kernel} -> {session.post_kernel} "
            f"(new kernel installed: {changed}, reboot required by config: {explicit}); "
            f"reboot {'scheduled' if decision else 'not required'}",
        )

        if decision:
            reason = "new kernel installed" if changed else "reboot required by configuration"
            session.queue_action(PostAction.REBOOT, reason)

    async def reboot(self, host: IRemoteHost, session: HostPatchSession, reason: str) -> bool:
        """Reboot the host and wait for it, bounded by the configured timeout."""
        phase = "reboot"
        timeout = session.config.reboot_timeout_seconds

        session.transition(SessionState.REBOOT)
        self._report(session, phase, f"Rebooting {session.hostname} ({reason}), timeout {timeout}s")
        session.transition(SessionState.WAIT_REACHABLE)

        start = time.monotonic()
        try:
            try:
                await asyncio.wait_for(host.reboot_and_wait(timeout), timeout=timeout)
            except asyncio.TimeoutError:
                raise RebootTimeoutError(
                    f"Host {session.hostname} did not return within {timeout} seconds",
                    host=session.hostname,
                    elapsed_seconds=time.monotonic() - start,
                )
        except Exception as e:
            elapsed = getattr(e, "elapsed_seconds", None) or time.monotonic() - start
            session.record_reboot(RebootOutcome(reason=reason, reachable_after=False, elapsed_seconds=elapsed))
            if not isinstance(e, RebootTimeoutError):
                # Keep failures such as expired credentials distinguishable from a slow boot
                e = RebootTimeoutError(f"{type(e).__name__}: {e}", host=session.hostname, elapsed_seconds=elapsed)
            self._fail(session, SessionState.REBOOT_TIMEOUT, phase, e)
            return False

        elapsed = time.monotonic() - start
        session.record_reboot(RebootOutcome(reason=reason, reachable_after=True, elapsed_seconds=elapsed))
        self._report(session, phase, f"Host {session.hostname} is reachable again after {elapsed:.0f}s")
        return True

    async def advisory_reboot_check(self, host: IRemoteHost, session: HostPatchSession) -> bool:
        """Ask the host whether a reboot is outstanding. Never fatal."""
        phase = "patch"
        try:
            rc = await host.check_reboot_required()
            needed = interpret_advisory_exit_code(rc, host=session.hostname)
        except AdvisoryCheckError as e:
            self._report(session, phase, f"Advisory reboot check ignored: {e}", logging.WARNING)
            return False
        except Exception as e:
            self._report(session, phase, f"Advisory reboot check could not run: {e}", logging.WARNING)
            return False

        session.facts["advisory_reboot_needed"] = needed
        self._report(
            session, phase, f"Advisory reboot check: {'reboot needed' if needed else 'no reboot needed'}"
        )
        return needed

    async def run_postcheck(self, host: IRemoteHost, session: HostPatchSession) -> None:
        """Report post-patch state. Problems are recorded, never fatal."""
        phase = "post_patch"
        session.transition(SessionState.POSTCHECK)

        try:
            reachable = await host.ping()
        except Exception as e:
            self._report(session, phase, f"Reachability check failed: {e}", logging.WARNING)
            reachable = False

        session.facts["reachable_after_patch"] = reachable
        if not reachable:
            self._report(session, phase, f"Host {session.hostname} is not reachable; skipping validation", logging.WARNING)
            return
        self._report(session, phase, "Host is reachable")

        try:
            kernel = normalize_kernel_version(await host.get_kernel_version())
            session.facts["running_kernel"] = kernel
            self._report(session, phase, f"New kernel on {session.hostname}: {kernel}")
        except Exception as e:
            self._report(session, phase, f"Kernel check failed: {e}", logging.WARNING)

        try:
            uptime = await host.get_uptime()
            session.facts["uptime"] = uptime
            self._report(session, phase, f"Uptime on {session.hostname}: {uptime}")
        except Exception as e:
            self._report(session, phase, f"Uptime check failed: {e}", logging.WARNING)

        await self._run_health_checks(host, session)

    async def _run_health_checks(self, host: IRemoteHost, session: HostPatchSession) -> None:
        phase = "post_patch"

        if not self.health_checks:
            self._report(session, phase, HEALTH_CHECK_PLACEHOLDER, logging.WARNING)
            return

        for check in self.health_checks:
            try:
                result = await check.run(host)
            except Exception as e:
                session.health_results[check.name] = False
                self._report(session, phase, f"Health check {check.name} errored: {e}", logging.WARNING)
                continue

            session.health_results[check.name] = result.passed
            self._report(
                session,
                phase,
                f"Health check {check.name}: {'passed' if result.passed else 'FAILED'} {result.detail}".strip(),
                logging.INFO if result.passed else logging.WARNING,
            )
