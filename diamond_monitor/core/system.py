"""Monitoring System Module - Orchestrates modules over one diamond.

The system owns the module registry, the event bus and the transport cache.
A run selects the enabled modules, orders them by dependency, validates all
of their configurations before any of them executes, runs them through the
execution scheduler and folds the results into a ``RunReport``.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from .aggregator import RunAggregator
from .config import MonitoringConfig
from .connection_pool import TransportCache
from .dependency import DependencyResolver
from .errors import ConfigurationError, ModuleRegistrationError
from .events import EventBus, EventListener, EventType, MonitoringEvent
from .executor import ExecutionScheduler
from .types import DiamondInfo, MonitoringContext, RunReport

logger = logging.getLogger(__name__)

__version__ = "1.0.0"


class DiamondMonitoringSystem:
    """Main orchestration engine for diamond monitoring."""

    def __init__(
        self,
        transport_cache: Optional[TransportCache] = None,
        resolver: Optional[DependencyResolver] = None,
        aggregator: Optional[RunAggregator] = None,
    ):
        """Initialize the monitoring system.

        Args:
            transport_cache: Cache of transports per network (default: a new one)
            resolver: Dependency resolver (default: DependencyResolver())
            aggregator: Run aggregator (default: RunAggregator())
        """
        self._modules: Dict[str, Any] = {}
        self.event_bus = EventBus()
        self.transport_cache = transport_cache or TransportCache()
        self.resolver = resolver or DependencyResolver()
        self.aggregator = aggregator or RunAggregator()

    # Registry

    def register_module(self, module: Any) -> None:
        """Register a monitoring module.

        Raises:
            ModuleRegistrationError: If the id is empty or already registered
        """
        module_id = getattr(module, "id", None)
        if not module_id:
            raise ModuleRegistrationError(f"Module {module!r} has no id")

        if module_id in self._modules:
            message = f"Module with ID '{module_id}' is already registered"
            logger.error(message)
            raise ModuleRegistrationError(message)

        self._modules[module_id] = module
        logger.info("Registered module: %s (%s)", module.name, module_id)

    def unregister_module(self, module_id: str) -> bool:
        """Unregister a monitoring module.

        Returns:
            True if the module was registered
        """
        if module_id not in self._modules:
            logger.warning("Module with ID '%s' is not registered", module_id)
            return False

        del self._modules[module_id]
        logger.info("Unregistered module: %s", module_id)
        return True

    def list_modules(self) -> List[Any]:
        return list(self._modules.values())

    def get_module(self, module_id: str) -> Optional[Any]:
        return self._modules.get(module_id)

    # Events

    def add_event_listener(self, listener: EventListener) -> None:
        self.event_bus.add_listener(listener)

    def remove_event_listener(self, listener: EventListener) -> bool:
        return self.event_bus.remove_listener(listener)

    def emit_event(self, event: MonitoringEvent) -> None:
        self.event_bus.emit(event)

    # Runs

    async def run_monitoring(
        self,
        diamond: DiamondInfo,
        transport: Any,
        config: Optional[MonitoringConfig] = None,
        module_ids: Optional[Sequence[str]] = None,
        report_callback: Optional[Callable[[RunReport], Any]] = None,
        strict: bool = False,
    ) -> RunReport:
        """Run monitoring over a diamond.

        Args:
            diamond: Diamond to monitor
            transport: Handle passed unchanged to every module (e.g. RPC client).
                None reuses the transport recorded for the network by an
                earlier run
            config: Run configuration (default: MonitoringConfig())
            module_ids: Optional ids restricting which modules run
            report_callback: Called with the final report
            strict: Raise ConfigurationError instead of returning a failure
                report when the run cannot start

        Returns:
            The run report. A run that cannot start yields a report with no
            modules and a FAIL summary.
        """
        config = config or MonitoringConfig()
        started_at = datetime.now()
        start = time.monotonic()
        verbose = config.reporting.verbose
        config_snapshot = config.to_dict()
        warnings: List[str] = []

        log_level = logging.INFO if verbose else logging.DEBUG
        logger.log(
            log_level,
            "Starting diamond monitoring: %s (%s) on %s (chain id %s)",
            diamond.name,
            diamond.address,
            diamond.network.name,
            diamond.network.chain_id,
        )

        self.emit_event(MonitoringEvent(
            type=EventType.MONITORING_START,
            timestamp=started_at,
            data={"diamond": diamond, "config": config},
        ))

        try:
            ordered = self._prepare_run(config, module_ids, warnings)

            logger.log(
                log_level,
                "Running %d monitoring module(s): %s",
                len(ordered),
                ", ".join(m.id for m in ordered),
            )

            context = MonitoringContext(
                diamond=diamond,
                transport=self.transport_cache.resolve(diamond.network, transport),
                config=config,
                dry_run=config.dry_run,
                verbose=verbose,
            )
            scheduler = ExecutionScheduler.from_config(config.execution, self.event_bus)
            results = await scheduler.execute(ordered, context)

            report = self.aggregator.build_report(
                results,
                diamond,
                config_snapshot,
                started_at,
                self._elapsed_ms(start),
                warnings,
            )
            logger.log(
                log_level,
                "Diamond monitoring completed in %dms: %s",
                report.duration_ms,
                report.status.value,
            )

        except ConfigurationError as e:
            logger.error("Diamond monitoring failed: %s", e)
            report = self.aggregator.failure_report(
                diamond, config_snapshot, started_at, self._elapsed_ms(start), str(e), warnings
            )
            if strict:
                self._complete(report, report_callback)
                raise

        except Exception as e:
            logger.exception("Diamond monitoring failed: %s", e)
            report = self.aggregator.failure_report(
                diamond, config_snapshot, started_at, self._elapsed_ms(start), str(e), warnings
            )

        self._complete(report, report_callback)
        return report

    def _prepare_run(
        self,
        config: MonitoringConfig,
        module_ids: Optional[Sequence[str]],
        warnings: List[str],
    ) -> List[Any]:
        """Select, order and validate the modules of a run.

        Raises:
            ConfigurationError: If nothing can run or any configuration is invalid
        """
        run_validation = config.validate(self._modules.keys())
        if not run_validation.is_valid:
            raise ConfigurationError(
                "Monitoring configuration is invalid: " + "; ".join(run_validation.errors),
                errors=run_validation.errors,
            )
        for warning in run_validation.warnings:
            logger.warning(warning)
        warnings.extend(run_validation.warnings)

        modules = self._get_modules_to_run(config, module_ids)
        if not modules:
            if module_ids:
                message = f"No specified modules found: {', '.join(module_ids)}"
            else:
                message = "No monitoring modules configured to run"
            raise ConfigurationError(message)

        resolved = self.resolver.resolve(modules)
        if resolved.has_cycle:
            warnings.append(
                "Circular dependency detected between modules "
                f"{', '.join(resolved.unresolved)}; using configured order"
            )

        self._validate_module_configurations(resolved.modules, config)
        return resolved.modules

    def _get_modules_to_run(
        self,
        config: MonitoringConfig,
        module_ids: Optional[Sequence[str]] = None,
    ) -> List[Any]:
        """Get enabled modules, optionally filtered by id, sorted by priority."""
        modules = list(self._modules.values())

        if module_ids is not None:
            wanted = set(module_ids)
            modules = [m for m in modules if m.id in wanted]

        enabled = [m for m in modules if config.settings_for(m.id).enabled]

        # sorted() is stable, so equal priorities keep registration order
        return sorted(enabled, key=lambda m: config.settings_for(m.id).priority)

    def _validate_module_configurations(
        self,
        modules: List[Any],
        config: MonitoringConfig,
    ) -> None:
        """Validate every module's configuration before any module runs.

        Raises:
            ConfigurationError: On the first module reporting errors
        """
        for module in modules:
            try:
                validation = module.validate_config(config.module_config(module.id))
            except Exception as e:
                raise ConfigurationError(
                    f"Module '{module.id}' configuration validation raised: {e}",
                    module_id=module.id,
                    errors=[str(e)],
                ) from e

            if not validation.is_valid:
                for error in validation.errors:
                    logger.error("Configuration error in module '%s': %s", module.id, error)
                raise ConfigurationError(
                    f"Module '{module.id}' configuration validation failed: "
                    + "; ".join(validation.errors),
                    module_id=module.id,
                    errors=validation.errors,
                )

            for warning in validation.warnings:
                logger.warning("Configuration warning in module '%s': %s", module.id, warning)

    def _complete(
        self,
        report: RunReport,
        report_callback: Optional[Callable[[RunReport], Any]],
    ) -> None:
        self.emit_event(MonitoringEvent(
            type=EventType.MONITORING_COMPLETE,
            data={"report": report},
        ))
        if report_callback:
            try:
                report_callback(report)
            except Exception as e:
                logger.error("Error in report callback: %s", e)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)

    # Maintenance

    def get_version(self) -> str:
        return __version__

    def get_statistics(self) -> Dict[str, int]:
        """Get registry, listener and connection pool sizes."""
        return {
            "registered_modules": len(self._modules),
            "active_listeners": len(self.event_bus),
            "connection_pool_size": len(self.transport_cache),
        }

    def cleanup_connections(self) -> None:
        self.transport_cache.clear()

    def reset(self) -> None:
        """Clear all modules, listeners and cached transports."""
        self._modules.clear()
        self.event_bus.clear()
        self.transport_cache.clear()
        logger.debug("DiamondMonitoringSystem reset")
