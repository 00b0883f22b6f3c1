"""Adapter registry keyed by payroll system identifier."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from uuid import UUID

from payroll_export.calculators.pricing import PricingProfile
from payroll_export.exporters.base import PayrollExportAdapter
from payroll_export.exporters.file_export import FileExportAdapter
from payroll_export.exporters.poweroffice import PowerOfficeAdapter
from payroll_export.exporters.tripletex import TripletexAdapter

AdapterFactory = Callable[[Mapping[UUID, str], Mapping[str, str]], PayrollExportAdapter]


class UnknownPayrollSystemError(Exception):
    """Raised when no adapter is registered for a system identifier."""

    def __init__(self, system: str, available: list[str]):
        self.system = system
        self.available = available
        super().__init__(
            f"No adapter available for system: {system} "
            f"(available: {', '.join(available) or 'none'})"
        )


@dataclass(frozen=True)
class _Registration:
    factory: AdapterFactory
    pricing: PricingProfile
    requires_identity: bool


class AdapterRegistry:
    """Maps system identifiers to adapter factories and pricing profiles.

    Adapters are built per run because they carry the identity and
    salary code mappings loaded for that run.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Registration] = {}

    def register(
        self,
        system: str,
        factory: AdapterFactory,
        pricing: PricingProfile | None = None,
        requires_identity: bool = True,
    ) -> None:
        self._entries[system] = _Registration(
            factory=factory,
            pricing=pricing or PricingProfile(name=system),
            requires_identity=requires_identity,
        )

    def _get(self, system: str) -> _Registration:
        entry = self._entries.get(system)
        if entry is None:
            raise UnknownPayrollSystemError(system, self.available_systems())
        return entry

    def create(
        self,
        system: str,
        identity_map: Mapping[UUID, str],
        salary_codes: Mapping[str, str] | None = None,
    ) -> PayrollExportAdapter:
        return self._get(system).factory(identity_map, salary_codes or {})

    def pricing_for(self, system: str) -> PricingProfile:
        return self._get(system).pricing

    def requires_identity(self, system: str) -> bool:
        return self._get(system).requires_identity

    def available_systems(self) -> list[str]:
        return sorted(self._entries)

    def is_supported(self, system: str) -> bool:
        return system in self._entries


def default_registry(engine_version: str = "0.1.0") -> AdapterRegistry:
    """Registry with the built-in Tripletex, PowerOffice and file adapters."""
    registry = AdapterRegistry()
    registry.register("tripletex", TripletexAdapter)
    registry.register("poweroffice", PowerOfficeAdapter)
    registry.register(
        "file_export",
        lambda identity_map, _codes: FileExportAdapter(
            identity_map, system_version=engine_version
        ),
        requires_identity=False,
    )
    return registry
