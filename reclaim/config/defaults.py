from __future__ import annotations

from reclaim.config.schema import AppConfig, CommandRule, PathRule
from reclaim.models.enums import TargetCategory
from reclaim.services.processes import DEFAULT_PROTECTED_PROCESSES


def default_config() -> AppConfig:
    memory_paths = [
        PathRule(
            "User icon cache",
            "~/Library/Caches/com.apple.iconservices.store",
            TargetCategory.SYSTEM_CACHE,
        ),
        PathRule(
            "System icon cache",
            "/Library/Caches/com.apple.iconservices.store",
            TargetCategory.SYSTEM_CACHE,
        ),
    ]

    memory_commands = [
        CommandRule("Purge inactive memory", ("sudo", "-n", "purge"), TargetCategory.MEMORY),
        CommandRule(
            "Flush directory service cache",
            ("sudo", "-n", "dscacheutil", "-flushcache"),
            TargetCategory.SYSTEM_CACHE,
        ),
        CommandRule(
            "Reload mDNSResponder",
            ("sudo", "-n", "killall", "-HUP", "mDNSResponder"),
            TargetCategory.SYSTEM_CACHE,
        ),
        CommandRule(
            "Remove font cache databases",
            ("sudo", "-n", "atsutil", "databases", "-remove"),
            TargetCategory.SYSTEM_CACHE,
        ),
    ]

    service_commands = [
        CommandRule("Restart Dock", ("killall", "Dock"), TargetCategory.SERVICES),
        CommandRule(
            "Restart WindowServer",
            ("sudo", "-n", "killall", "-HUP", "WindowServer"),
            TargetCategory.SERVICES,
        ),
    ]

    # /tmp is a symlink to /private/tmp, so only the real path is listed.
    # Browser and pip caches come before the per-application sweep so they keep
    # their own labels; the sweep then skips anything already planned.
    disk_paths = [
        PathRule("System temp files", "/private/tmp/*", TargetCategory.TEMP),
        PathRule("Temporary items cache", "~/Library/Caches/TemporaryItems/*", TargetCategory.TEMP),
        PathRule("Safari cache", "~/Library/Caches/com.apple.Safari/*", TargetCategory.CACHE),
        PathRule("Chrome cache", "~/Library/Caches/Google/Chrome/*", TargetCategory.CACHE),
        PathRule("Firefox cache", "~/Library/Caches/Firefox/*", TargetCategory.CACHE),
        PathRule("Edge cache", "~/Library/Caches/com.microsoft.edgemac/*", TargetCategory.CACHE),
        PathRule("Python pip cache", "~/Library/Caches/pip/*", TargetCategory.DEVELOPMENT),
        PathRule("Application cache", "~/Library/Caches/*/*", TargetCategory.CACHE),
        PathRule("User Trash", "~/.Trash/*", TargetCategory.TRASH),
        PathRule("User application logs", "~/Library/Logs/*", TargetCategory.LOGS),
        PathRule(
            "Xcode derived data",
            "~/Library/Developer/Xcode/DerivedData/*",
            TargetCategory.DEVELOPMENT,
        ),
    ]

    disk_commands = [
        CommandRule("npm cache", ("npm", "cache", "clean", "--force"), TargetCategory.DEVELOPMENT),
        CommandRule("Homebrew cache", ("brew", "cleanup", "-s"), TargetCategory.DEVELOPMENT),
    ]

    return AppConfig(
        protected_processes=list(DEFAULT_PROTECTED_PROCESSES),
        memory_paths=memory_paths,
        memory_commands=memory_commands,
        service_commands=service_commands,
        disk_paths=disk_paths,
        disk_commands=disk_commands,
    )
