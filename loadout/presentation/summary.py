"""
Summary — Loadout text for forum posts, chat and social sharing

- text_summary(): plain block for forums
- platform_texts(): Twitter, Reddit and Discord flavoured posts
- social_share_urls(): prefilled share-intent links
- build_summary(): counts and labels for a preview card
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import quote

from ..core.selection import Loadout


SUMMARY_TITLE = "Loadout Build"
RULE_WIDTH = 40

CPU_LABELS = {"amd_x3d": "AMD X3D", "amd": "AMD", "intel": "Intel"}
GPU_LABELS = {"nvidia": "NVIDIA", "amd": "AMD", "intel": "Intel"}
PRESET_LABELS = {
    "benchmarker": "Benchmarker",
    "pro_gamer": "Pro Gamer",
    "streamer": "Streamer",
    "gamer": "Gamer",
}

TWEET_LIMIT = 280
TWEET_URL_LENGTH = 23   # Twitter counts every link as 23 characters
TWEET_TAGLINE = "My Windows gaming loadout"
TWEET_HASHTAGS = "#Loadout #WindowsGaming"

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _label(labels: Dict[str, str], key: Optional[str]) -> Optional[str]:
    if not key:
        return None
    return labels.get(key, key)


def _hardware(loadout: Loadout) -> str:
    parts = (_label(CPU_LABELS, loadout.cpu), _label(GPU_LABELS, loadout.gpu))
    return " + ".join(part for part in parts if part)


def text_summary(loadout: Loadout, url: Optional[str] = None, rule: str = "-") -> str:
    """
    Render a loadout as a short block of text:

        Loadout Build
        ----------------------------------------
        Hardware: AMD_X3D + NVIDIA
        DNS: cloudflare
        Optimizations: 4 enabled
        Software: 2 packages

        Import: https://host/#b=1.eNq...
    """
    lines: List[str] = [SUMMARY_TITLE, rule * RULE_WIDTH]

    if loadout.cpu or loadout.gpu:
        hardware = " + ".join(part.upper() for part in (loadout.cpu, loadout.gpu) if part)
        lines.append(f"Hardware: {hardware}")
    if loadout.preset:
        lines.append(f"Preset: {loadout.preset}")
    if loadout.dns:
        lines.append(f"DNS: {loadout.dns}")
    if loadout.peripherals:
        lines.append(f"Peripherals: {', '.join(loadout.peripherals)}")
    if loadout.monitors:
        lines.append(f"Monitor software: {', '.join(loadout.monitors)}")
    if loadout.optimizations:
        lines.append(f"Optimizations: {len(loadout.optimizations)} enabled")
    if loadout.packages:
        lines.append(f"Software: {len(loadout.packages)} packages")

    if url:
        lines.append("")
        lines.append(f"Import: {url}")

    return "\n".join(lines)


# =============================================================================
# Platform posts
# =============================================================================

def _tweet_body(loadout: Loadout) -> str:
    """Tweet text without the link, fitted to the character limit."""
    parts: List[str] = []
    hardware = _hardware(loadout)
    if hardware:
        parts.append(hardware)
    if loadout.preset:
        parts.append(f"[{_label(PRESET_LABELS, loadout.preset)}]")

    stats = []
    if loadout.optimizations:
        stats.append(f"{len(loadout.optimizations)} tweaks")
    if loadout.packages:
        stats.append(f"{len(loadout.packages)} apps")
    if stats:
        parts.append(", ".join(stats))

    limit = TWEET_LIMIT - TWEET_URL_LENGTH - 2
    text = f"{TWEET_TAGLINE} ({' · '.join(parts)})" if parts else TWEET_TAGLINE
    if len(text) + len(TWEET_HASHTAGS) + 1 <= limit:
        text = f"{text} {TWEET_HASHTAGS}"
    if len(text) > limit:
        text = text[:limit - 3] + "..."
    return text


def twitter_text(loadout: Loadout, url: str) -> str:
    return f"{_tweet_body(loadout)}\n{url}"


def reddit_text(loadout: Loadout, url: str) -> str:
    """Markdown post with a settings table."""
    preset = f" [{_label(PRESET_LABELS, loadout.preset)}]" if loadout.preset else ""
    lines = [
        f"## My Loadout Build{preset}",
        "",
        "| Setting | Value |",
        "|---------|-------|",
    ]
    if loadout.cpu:
        lines.append(f"| CPU | {_label(CPU_LABELS, loadout.cpu)} |")
    if loadout.gpu:
        lines.append(f"| GPU | {_label(GPU_LABELS, loadout.gpu)} |")
    if loadout.dns:
        lines.append(f"| DNS | {loadout.dns[:1].upper()}{loadout.dns[1:]} |")
    if loadout.optimizations:
        lines.append(f"| Optimizations | {len(loadout.optimizations)} enabled |")
    if loadout.packages:
        lines.append(f"| Software | {len(loadout.packages)} packages |")
    if loadout.peripherals:
        names = ", ".join(p[:1].upper() + p[1:] for p in loadout.peripherals)
        lines.append(f"| Peripherals | {names} |")

    lines += [
        "",
        f"**Import link:** {url}",
        "",
        "---",
        "*Shared with loadout, the Windows gaming loadout builder*",
    ]
    return "\n".join(lines)


def discord_text(loadout: Loadout, url: str) -> str:
    preset = f" · {_label(PRESET_LABELS, loadout.preset)}" if loadout.preset else ""
    lines = [f"**Loadout Build**{preset}"]

    hardware = _hardware(loadout)
    if hardware:
        lines.append(f"> {hardware}")

    stats = []
    if loadout.optimizations:
        stats.append(f"{len(loadout.optimizations)} optimizations")
    if loadout.packages:
        stats.append(f"{len(loadout.packages)} packages")
    if stats:
        lines.append(f"> {' · '.join(stats)}")

    lines += ["", url]
    return "\n".join(lines)


@dataclass(frozen=True)
class PlatformTexts:
    twitter: str
    reddit: str
    discord: str


def platform_texts(loadout: Loadout, url: str) -> PlatformTexts:
    return PlatformTexts(
        twitter=twitter_text(loadout, url),
        reddit=reddit_text(loadout, url),
        discord=discord_text(loadout, url),
    )


# =============================================================================
# Share intents and preview
# =============================================================================

@dataclass(frozen=True)
class SocialShareURLs:
    twitter: str
    reddit: str
    linkedin: str


def social_share_urls(loadout: Loadout, url: str) -> SocialShareURLs:
    """Share-intent links; the loadout link itself is passed as a parameter."""
    def component(text: str) -> str:
        return quote(text, safe=_URI_COMPONENT_SAFE)

    preset = f" [{_label(PRESET_LABELS, loadout.preset)}]" if loadout.preset else ""
    title = f"My Windows Gaming Loadout{preset}"

    return SocialShareURLs(
        twitter=(
            f"https://twitter.com/intent/tweet?text={component(_tweet_body(loadout))}"
            f"&url={component(url)}"
        ),
        reddit=f"https://reddit.com/submit?url={component(url)}&title={component(title)}",
        linkedin=f"https://www.linkedin.com/sharing/share-offsite/?url={component(url)}",
    )


@dataclass(frozen=True)
class BuildSummary:
    """What a preview card shows."""
    cpu: str
    gpu: str
    preset: Optional[str]
    optimization_count: int
    package_count: int
    peripheral_count: int


def build_summary(loadout: Loadout) -> BuildSummary:
    return BuildSummary(
        cpu=_label(CPU_LABELS, loadout.cpu) or "Not set",
        gpu=_label(GPU_LABELS, loadout.gpu) or "Not set",
        preset=_label(PRESET_LABELS, loadout.preset),
        optimization_count=len(loadout.optimizations),
        package_count=len(loadout.packages),
        peripheral_count=len(loadout.peripherals),
    )
