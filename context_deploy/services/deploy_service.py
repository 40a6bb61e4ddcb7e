"""Deployment orchestrator

Runs one deployment through a fixed sequence of states:

    idle -> validating -> security_scanning -> locking
         -> (dry_run_report | deploying) -> finalizing -> released

Validation and security failures stop before the lock is taken. Once the
lock is held, ``finalizing`` always runs: it rolls back failed runs that
kept a backup manifest and releases the lock.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from ..api.exceptions import LockError, LockTimeoutError
from ..constants import ConflictStrategy, ErrorCode, WarningCode, Severity
from ..core.path_resolver import PathResolver, available_components
from ..core.performance_optimizer import (
    DispatchMode,
    ExecutionPlan,
    PerformanceOptimizer,
    TTLCache,
    Workload,
)
from ..core.security_scanner import SecurityScanner
from ..core.validation_engine import ValidationEngine
from ..handlers.base import ComponentHandler
from ..handlers.registry import create_handler
from ..models.backup import BackupManifest
from ..models.context import Context
from ..models.lock import Lock
from ..models.options import DeploymentOptions, TargetContext
from ..models.result import DeploymentResult, HandlerResult, OperationStatus, ValidationResult
from ..utils.async_utils import BoundedWorkerPool
from .backup_service import BackupService
from .conflict_resolver import ConflictResolver, Prompter
from .lock_service import LockService

logger = logging.getLogger(__name__)


class DeploymentState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SECURITY_SCANNING = "security_scanning"
    LOCKING = "locking"
    DRY_RUN_REPORT = "dry_run_report"
    DEPLOYING = "deploying"
    FINALIZING = "finalizing"
    RELEASED = "released"


class DeployService:
    """Validate, lock and deploy a context onto one platform"""

    def __init__(self,
                 target: TargetContext,
                 lock_service: LockService,
                 backup_service: BackupService,
                 optimizer: Optional[PerformanceOptimizer] = None,
                 cache: Optional[TTLCache] = None,
                 prompter: Optional[Prompter] = None,
                 validation_engine: Optional[ValidationEngine] = None,
                 security_scanner: Optional[SecurityScanner] = None,
                 retry_attempts: int = 3,
                 retry_delay: float = 0.05):
        """Initialize deploy service

        Args:
            target: Home and project roots to deploy into
            lock_service: Cross-process lock service
            backup_service: Default backup location
            optimizer: Execution strategy selection and timing
            cache: Validation cache shared across runs of this service
            prompter: Interactive chooser for the ``prompt`` conflict strategy
            validation_engine: Context validator
            security_scanner: Pre-write scanner
            retry_attempts: Attempts per file write
            retry_delay: Initial delay between write attempts
        """
        self.target = target
        self.lock_service = lock_service
        self.backup_service = backup_service
        self.cache = cache if cache is not None else TTLCache()
        self.optimizer = optimizer if optimizer is not None else PerformanceOptimizer(cache=self.cache)
        self.prompter = prompter
        self.validation_engine = validation_engine or ValidationEngine()
        self.security_scanner = security_scanner or SecurityScanner()
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.paths = PathResolver(target.home_dir, target.project_dir)

    def _enter(self, result: DeploymentResult, state: DeploymentState) -> None:
        logger.debug(f"Deployment state: {state.value}")
        result.states.append(state.value)

    async def deploy(self, context: Context, options: DeploymentOptions) -> DeploymentResult:
        """
        Deploy a context

        Args:
            context: Context to deploy
            options: Deployment options

        Returns:
            DeploymentResult; failures are reported in it

        Raises:
            InvalidOptionsError: If the options are inconsistent (before any work)
        """
        platform = options.platform
        options.validate(available_components(platform))

        result = DeploymentResult(platform=platform, dry_run=options.dry_run)
        self.optimizer.reset()
        self.optimizer.start_timer("total")
        self._enter(result, DeploymentState.IDLE)

        # Validating
        self._enter(result, DeploymentState.VALIDATING)
        self.optimizer.start_timer("validation")
        validation = self._validate(context, options)
        self.optimizer.stop_timer("validation")
        result.errors.extend(validation.errors)
        result.warnings.extend(validation.warnings)
        if not validation.is_valid:
            logger.error(f"Context failed validation for {platform.value}")
            return self._finish(result, OperationStatus.FAILED, options)

        # SecurityScanning
        self._enter(result, DeploymentState.SECURITY_SCANNING)
        self.optimizer.start_timer("security_scan")
        scan = self.security_scanner.scan_context(context)
        self.optimizer.stop_timer("security_scan")
        result.metadata["security"] = scan.to_dict()
        if not scan.is_safe:
            result.add_error(
                ErrorCode.SECURITY_CHECK_FAILED,
                "; ".join(scan.blockers),
                Severity.CRITICAL,
                findings=[f.to_dict() for f in scan.findings]
            )
            if not (options.dry_run or options.validate_only):
                return self._finish(result, OperationStatus.FAILED, options)

        if options.validate_only:
            status = OperationStatus.FAILED if result.errors else OperationStatus.SUCCESS
            return self._finish(result, status, options)

        # Locking
        self._enter(result, DeploymentState.LOCKING)
        resource = self.paths.lock_resource(platform)
        self.optimizer.start_timer("lock")
        try:
            lock = await self.lock_service.acquire(resource, timeout=options.lock_timeout)
        except LockTimeoutError as e:
            result.add_error(ErrorCode.LOCK_TIMEOUT, str(e), resource=resource, holder_pid=e.holder_pid)
            return self._finish(result, OperationStatus.FAILED, options)
        except LockError as e:
            result.add_error(ErrorCode.LOCK_ERROR, str(e), resource=resource)
            return self._finish(result, OperationStatus.FAILED, options)
        finally:
            self.optimizer.stop_timer("lock")

        status = OperationStatus.FAILED
        manifest: Optional[BackupManifest] = None
        backup_service = self._backup_service_for(options)
        try:
            if options.dry_run:
                self._enter(result, DeploymentState.DRY_RUN_REPORT)
            else:
                self._enter(result, DeploymentState.DEPLOYING)
                if options.needs_backup:
                    manifest = backup_service.new_manifest(platform.value)
                elif options.conflict_strategy == ConflictStrategy.PROMPT:
                    manifest = backup_service.new_manifest(platform.value, on_demand=True)

            self.optimizer.start_timer("deploy")
            await self._deploy_components(context, options, result, backup_service, manifest)
            self.optimizer.stop_timer("deploy")
            status = self._component_status(result)
        except Exception as e:
            logger.error(f"Deployment to {platform.value} aborted: {e}")
            result.add_error(ErrorCode.COMPONENT_DEPLOYMENT_ERROR, f"Deployment aborted: {e}")
            status = OperationStatus.FAILED
        finally:
            self._enter(result, DeploymentState.FINALIZING)
            status = await self._finalize_backup(result, status, backup_service, manifest, options)
            await self._release(lock)
            self._enter(result, DeploymentState.RELEASED)

        return self._finish(result, status, options)

    def _validate(self, context: Context, options: DeploymentOptions) -> ValidationResult:
        key = ("validation", context.fingerprint(), options.platform.value)
        validation = self.cache.get_or_compute(
            key, lambda: self.validation_engine.validate(context, options.platform)
        )

        bundle = context.bundle(options.platform)
        present = bundle.component_names() if bundle else []
        missing = [c for c in options.components if c not in present]
        if missing:
            checked = ValidationResult()
            checked.merge(validation)
            checked.add_warning(
                WarningCode.COMPONENT_NOT_PRESENT,
                f"Requested component(s) not in context: {', '.join(missing)}",
                components=missing
            )
            return checked
        return validation

    def _backup_service_for(self, options: DeploymentOptions) -> BackupService:
        if options.backup_dir is None:
            return self.backup_service
        return BackupService(options.backup_dir, chunk_size=options.chunk_size)

    def _create_handlers(self, context: Context, options: DeploymentOptions,
                         backup_service: BackupService) -> Dict[str, ComponentHandler]:
        resolver = ConflictResolver(backup_service=backup_service, prompter=self.prompter)
        return {
            name: create_handler(options.platform, name, resolver, backup_service,
                                 retry_attempts=self.retry_attempts, retry_delay=self.retry_delay)
            for name in self.deployable_components(context, options)
        }

    def _plan(self, context: Context, options: DeploymentOptions,
              handlers: Dict[str, ComponentHandler]) -> ExecutionPlan:
        file_count = 0
        for name, handler in handlers.items():
            try:
                file_count += len(handler.plan(context.component_data(options.platform, name), self.paths))
            except ValueError:
                # Reported by the handler when it runs
                continue

        self.optimizer.streaming_threshold = options.streaming_threshold
        self.optimizer.parallel_threshold = options.parallel_threshold
        self.optimizer.max_concurrency = options.max_concurrency
        self.optimizer.chunk_size = options.chunk_size

        workload = Workload(
            file_count=file_count,
            total_bytes=context.size_bytes(options.platform),
            component_count=len(handlers)
        )
        allow_parallel = self.prompter is None and options.continue_on_error
        return self.optimizer.select_strategy(workload, allow_parallel=allow_parallel)

    async def _deploy_components(self, context: Context, options: DeploymentOptions,
                                 result: DeploymentResult, backup_service: BackupService,
                                 manifest: Optional[BackupManifest]) -> None:
        handlers = self._create_handlers(context, options, backup_service)
        if not handlers:
            result.add_warning(WarningCode.COMPONENT_NOT_PRESENT,
                               f"No components selected for {options.platform.value}")
            return

        plan = self._plan(context, options, handlers)
        result.metadata["execution_plan"] = plan.to_dict()
        names = list(handlers)
        logger.info(
            f"{'Checking' if options.dry_run else 'Deploying'} {len(names)} component(s) "
            f"to {options.platform.value} ({plan.dispatch.value})"
        )

        if plan.dispatch == DispatchMode.PARALLEL:
            pool = BoundedWorkerPool(plan.concurrency)
            for name in names:
                pool.submit(handlers[name].deploy, context.component_data(options.platform, name),
                            self.target, options, manifest, plan)
            outcomes = await pool.join()
            for name, outcome in zip(names, outcomes):
                self._collect(result, name, outcome)
            return

        for index, name in enumerate(names):
            try:
                outcome = await handlers[name].deploy(
                    context.component_data(options.platform, name), self.target, options, manifest, plan
                )
            except Exception as e:
                outcome = e
            component_result = self._collect(result, name, outcome)
            if not component_result.success and not options.continue_on_error:
                remaining = names[index + 1:]
                if remaining:
                    logger.warning(f"Stopping after {name} failed; not deployed: {', '.join(remaining)}")
                    result.skipped_components.extend(remaining)
                break

    def _collect(self, result: DeploymentResult, name: str, outcome: Any) -> HandlerResult:
        if isinstance(outcome, HandlerResult):
            component_result = outcome
        else:
            logger.error(f"Component {name} raised {type(outcome).__name__}: {outcome}")
            component_result = HandlerResult(component=name)
            component_result.add_error(ErrorCode.COMPONENT_DEPLOYMENT_ERROR,
                                       f"{name}: {outcome}", component=name)
        result.add_component_result(component_result)
        if component_result.success:
            logger.info(f"{name}: {len(component_result.deployed_files)} file(s), "
                        f"{len(component_result.skipped_files)} skipped")
        else:
            logger.error(f"{name}: {len(component_result.errors)} error(s)")
        return component_result

    def _component_status(self, result: DeploymentResult) -> OperationStatus:
        if result.has_error(ErrorCode.SECURITY_CHECK_FAILED):
            return OperationStatus.FAILED
        failed = result.failed_components
        if not failed:
            return OperationStatus.SUCCESS
        if result.deployed_components:
            return OperationStatus.PARTIAL
        return OperationStatus.FAILED

    async def _finalize_backup(self, result: DeploymentResult, status: OperationStatus,
                               backup_service: BackupService, manifest: Optional[BackupManifest],
                               options: DeploymentOptions) -> OperationStatus:
        if manifest is None or not manifest.is_active:
            return status

        if result.failed_components or status == OperationStatus.FAILED:
            logger.warning(f"Rolling back {options.platform.value} deployment from {manifest.backup_dir}")
            rollback = await backup_service.rollback(manifest)
            result.warnings.extend(rollback.warnings)
            result.add_error(
                ErrorCode.ROLLED_BACK,
                f"Deployment rolled back: restored {len(rollback.files_restored)} file(s), "
                f"removed {len(rollback.files_removed)} file(s)",
                partial=not rollback.success
            )
            result.metadata["rollback"] = rollback.to_dict()
            result.backup_path = manifest.backup_dir
            result.summary.backup_created = True
            return OperationStatus.ROLLED_BACK

        if options.keep_backup:
            result.backup_path = manifest.backup_dir
            result.summary.backup_created = True
        else:
            backup_service.discard(manifest)
        return status

    async def _release(self, lock: Lock) -> None:
        try:
            await self.lock_service.release(lock)
        except OSError as e:
            logger.error(f"Failed to release lock {lock.resource}: {e}")

    def _finish(self, result: DeploymentResult, status: OperationStatus,
                options: DeploymentOptions) -> DeploymentResult:
        if DeploymentState.FINALIZING.value not in result.states:
            self._enter(result, DeploymentState.FINALIZING)
        self.optimizer.stop_timer("total")
        result.complete(status)
        if result.conflicts:
            result.metadata["conflicts"] = ConflictResolver().conflict_report(result.conflicts)
        if options.collect_metrics:
            result.metadata["performance"] = self.optimizer.report()
        logger.info(f"Deployment to {options.platform.value} finished: {status.value}")
        return result

    def deployable_components(self, context: Context, options: DeploymentOptions) -> List[str]:
        """Components of the context this run would deploy"""
        bundle = context.bundle(options.platform)
        return options.select_components(bundle.component_names() if bundle else [])
