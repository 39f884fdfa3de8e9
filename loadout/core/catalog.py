"""
Catalog — The live set of selectable keys, per registry category

This is what the product currently OFFERS. The registry is what ids MEAN.
The audit proves every offered key has a live id and every live id points
at an offered key.

Adding a new optimization:
1. Add its key to the right tier below
2. Run `loadout assign optimization <key>` (takes the next free id)
3. Run `loadout snapshot` and `loadout audit`
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional


CATEGORIES = ("cpu", "gpu", "dns", "peripheral", "monitor", "preset", "optimization")

CPU_TYPES = ("amd_x3d", "amd", "intel")

GPU_TYPES = ("nvidia", "amd", "intel")

DNS_PROVIDERS = ("cloudflare", "google", "quad9", "opendns", "adguard")

PERIPHERAL_TYPES = ("logitech", "razer", "corsair", "steelseries", "asus", "wooting")

MONITOR_SOFTWARE_TYPES = ("dell", "lg", "hp")

PRESET_TYPES = ("benchmarker", "pro_gamer", "streamer", "gamer")

SAFE_OPTIMIZATIONS = (
    "pagefile", "fastboot", "timer", "power_plan", "usb_power", "pcie_power",
    "dns", "nagle", "audio_enhancements", "gamedvr", "background_apps",
    "edge_debloat", "copilot_disable", "explorer_speed", "temp_purge",
    "razer_block", "restore_point", "classic_menu", "storage_sense",
    "display_perf", "end_task", "explorer_cleanup", "notifications_off",
    "ps7_telemetry", "multiplane_overlay", "mouse_accel", "usb_suspend",
    "keyboard_response", "game_mode", "min_processor_state",
    "hibernation_disable", "rss_enable", "adapter_power", "delivery_opt",
    "wer_disable", "wifi_sense", "spotlight_disable", "feedback_disable",
    "clipboard_sync", "accessibility_shortcuts", "audio_communications",
    "audio_system_sounds", "input_buffer", "filesystem_perf", "dwm_perf",
)

CAUTION_OPTIMIZATIONS = (
    "msi_mode", "hpet", "game_bar", "hags", "fso_disable", "ultimate_perf",
    "services_trim", "disk_cleanup", "wpbt_disable", "qos_gaming",
    "network_throttling", "interrupt_affinity", "process_mitigation",
    "mmcss_gaming", "scheduler_opt", "core_parking", "timer_registry",
    "rsc_disable", "sysmain_disable", "services_search_off", "memory_gaming",
    "power_throttle_off", "priority_boost_off",
)

RISKY_OPTIMIZATIONS = (
    "privacy_tier1", "privacy_tier2", "privacy_tier3", "bloatware",
    "ipv4_prefer", "teredo_disable", "native_nvme", "smt_disable",
    "audio_exclusive", "tcp_optimizer",
)

LUDICROUS_OPTIMIZATIONS = (
    "spectre_meltdown_off", "core_isolation_off", "kernel_mitigations_off",
    "dep_off", "background_polling", "amd_ulps_disable", "nvidia_p0_state",
    "network_binding_strip",
)

OPTIMIZATION_TIERS = {
    "safe": SAFE_OPTIMIZATIONS,
    "caution": CAUTION_OPTIMIZATIONS,
    "risky": RISKY_OPTIMIZATIONS,
    "ludicrous": LUDICROUS_OPTIMIZATIONS,
}

# Bypass the consent flow if shared; recipients must opt in themselves
BLOCKED_SHARE_KEYS = frozenset({
    "spectre_meltdown_off",
    "core_isolation_off",
    "kernel_mitigations_off",
    "dep_off",
})


@dataclass(frozen=True)
class Catalog:
    """Offered keys per category plus the share blocklist."""
    keys: Dict[str, FrozenSet[str]]
    blocked: FrozenSet[str] = field(default_factory=frozenset)

    def offers(self, category: str, key: str) -> bool:
        return key in self.keys.get(category, frozenset())

    def keys_for(self, category: str) -> FrozenSet[str]:
        return self.keys.get(category, frozenset())

    def is_blocked(self, key: str) -> bool:
        return key in self.blocked

    def tier_of(self, key: str) -> Optional[str]:
        """Optimization tier for a key, None if not an offered optimization."""
        for tier, keys in OPTIMIZATION_TIERS.items():
            if key in keys:
                return tier
        return None

    @classmethod
    def build(cls, keys: Dict[str, Iterable[str]], blocked: Iterable[str] = ()) -> 'Catalog':
        return cls(
            keys={category: frozenset(values) for category, values in keys.items()},
            blocked=frozenset(blocked),
        )


def default_catalog() -> Catalog:
    """The catalog shipped with this release."""
    optimizations = []
    for tier_keys in OPTIMIZATION_TIERS.values():
        optimizations.extend(tier_keys)

    return Catalog.build(
        {
            "cpu": CPU_TYPES,
            "gpu": GPU_TYPES,
            "dns": DNS_PROVIDERS,
            "peripheral": PERIPHERAL_TYPES,
            "monitor": MONITOR_SOFTWARE_TYPES,
            "preset": PRESET_TYPES,
            "optimization": optimizations,
        },
        blocked=BLOCKED_SHARE_KEYS,
    )


def validate_packages(packages: Iterable[str], catalog_keys: Iterable[str]):
    """
    Split package keys into those the package catalog knows and a miss count.

    Package keys are opaque strings; the package catalog is an external
    lookup, so this is advisory and never part of decode.

    Returns:
        (valid_packages, invalid_count)
    """
    known = set(catalog_keys)
    valid = []
    invalid_count = 0
    for package in packages:
        if package in known:
            valid.append(package)
        else:
            invalid_count += 1
    return valid, invalid_count
