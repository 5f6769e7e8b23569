"""Core constants for mrzip."""

# Pack layout
MANIFEST_FILENAME = "modrinth.index.json"
SUPPORTED_FORMAT_VERSIONS = (1,)
SUPPORTED_GAMES = ("minecraft",)


class OverrideDirs:
    """Override directories inside a source pack."""

    COMMON = "overrides"
    CLIENT = "client-overrides"
    SERVER = "server-overrides"


class EnvRequirement:
    """Per-side requirement levels of a manifest file."""

    REQUIRED = "required"
    OPTIONAL = "optional"
    UNSUPPORTED = "unsupported"


class Loaders:
    """Dependency keys of known mod loaders, mapped to display names."""

    DISPLAY_NAMES = {
        "fabric-loader": "Fabric",
        "quilt-loader": "Quilt",
        "forge": "Forge",
        "neoforge": "NeoForge",
        "neo-forge": "NeoForge",
    }
    GAME_DEPENDENCY = "minecraft"


# Output layout
MOD_ARCHIVE_SUFFIX = ".jar"
INJECTED_MODS_PREFIX = "mods/"
FULL_BUNDLE_SUFFIX = "-FULL"
CLIENT_ONLY_FOLDERS = ("resourcepacks/", "shaderpacks/")


class ProgressBands:
    """Percentages reserved for each stage of a conversion."""

    OVERRIDES = 5  # 0-5: copying overrides
    DOWNLOAD_START = 5
    DOWNLOAD_END = 95  # 5-95: downloads
    DONE = 100  # 95-100: final compression


class DownloadDefaults:
    """Download scheduling defaults."""

    MAX_CONCURRENT = 5  # Fixed cap on simultaneous fetches
    TIMEOUT = 60.0
    MAX_RETRIES = 3  # Total attempts per URL
    BACKOFF_BASE_DELAY = 1.0
    BACKOFF_MAX_DELAY = 30.0
    CHUNK_SIZE = 64 * 1024
    SPOOL_MEMORY_BYTES = 8 * 1024 * 1024  # Larger bodies spill to disk
    CORS_PROXY = "https://corsproxy.io/?"
    USER_AGENT = "mrzip/0.1.0 (modpack converter)"
    RETRYABLE_STATUS_CODES = (408, 425, 429, 500, 502, 503, 504)


class ScriptDefaults:
    """Startup script defaults."""

    MIN_RAM = 4  # GB
    MAX_RAM = 8  # GB
    # Aikar's G1 flags
    JAVA_FLAGS = (
        "-XX:+UseG1GC -Dsun.rmi.dgc.server.gcInterval=2147483646 "
        "-XX:+UnlockExperimentalVMOptions -XX:G1NewSizePercent=20 "
        "-XX:G1ReservePercent=20 -XX:MaxGCPauseMillis=50 "
        "-XX:G1HeapRegionSize=32M"
    )
    SERVER_JAR = "server.jar"
    SH_NAME = "start.sh"
    BAT_NAME = "start.bat"


class SelectionDefaults:
    """Heuristics used to pick a default selection in server mode."""

    # File name fragments of mods that only make sense on a client
    CLIENT_ONLY_KEYWORDS = (
        "sodium",
        "iris",
        "oculus",
        "optifine",
        "embeddium",
        "rubidium",
        "modmenu",
        "zoomify",
        "dynamic-fps",
        "entityculling",
        "betterf3",
    )


class SystemDefaults:
    """System-wide default values."""

    MAX_EVENT_HISTORY = 1000
    ETA_SMOOTHING = 0.3  # Weight of the newest sample in the ETA average
