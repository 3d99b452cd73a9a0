# Subfolder conventions looked for at the root of every volume
GAMES_FOLDER = "Games"
REPACKS_FOLDER = "Repacks"
EPIC_FOLDER = "EpicGames"
STEAM_LIBRARY_PARTS = ("SteamLibrary", "steamapps")

EXECUTABLE_EXTENSIONS = frozenset({".exe"})
COVER_EXTENSIONS = (".jpg", ".png")

# Flat-file categories: folder name -> accepted extensions
MEDIA_FOLDERS = {
    "Music": (".mp3",),
    "Pictures": (".jpg",),
    "Videos": (".mp4",),
}

# Scene / repack groups stripped from titles before comparison
REPACK_GROUP_TOKENS = (
    "FitGirl",
    "DODI",
    "ElAmigos",
    "Xatab",
    "GOG",
    "PROPHET",
    "CODEX",
    "Razor1911",
    "FLT",
    "PLAZA",
    "GoldBerg",
    "EMPRESS",
    "P2P",
    "Repack",
)

# Folder names searched on every volume when looking for a store identifier
PC_LIBRARY_FOLDERS = (
    "Games",
    "Repacks",
    "PC Games",
    "Epic Games",
    "GOG Games",
    "Amazon Games",
    "Battle.net",
    "Bethesda",
    "EA Games",
    "Electronic Arts",
    "EA Desktop",
    "Humble",
    "itch.io",
    "Legacy Games",
    "Origin",
    "Rockstar",
    "Ubisoft",
    "Xbox",
    "Microsoft Games",
)

PC_PLATFORM = "PC (Windows)"
SWITCH_PLATFORM = "Nintendo - Switch"

# Emulator executable name fragment -> platform, first match wins
EMULATOR_PLATFORMS = (
    ("dolphin", "Nintendo - GameCube"),
    ("yuzu", SWITCH_PLATFORM),
    ("ryujinx", SWITCH_PLATFORM),
    ("xemu", "Microsoft - Xbox"),
    ("duckstation", "Sony - PlayStation"),
    ("pcsx2", "Sony - PlayStation 2"),
    ("rpcs3", "Sony - PlayStation 3"),
    ("ppsspp", "Sony - PlayStation Portable"),
    ("cemu", "Nintendo - Wii U"),
    ("lime 3ds", "Nintendo - 3DS"),
    ("citra", "Nintendo - 3DS"),
    ("melon", "Nintendo - DS"),
    ("desmume", "Nintendo - DS"),
    ("vita3k", "Sony - PlayStation Vita"),
    ("xenia", "Microsoft - Xbox 360"),
    ("cxbx", "Microsoft - Xbox"),
    ("mame", "Arcade"),
    ("snes9x", "Nintendo - SNES"),
    ("zsnes", "Nintendo - SNES"),
    ("fceux", "Nintendo - NES"),
    ("nestopia", "Nintendo - NES"),
    ("mgba", "Nintendo - GameBoy Advance"),
    ("visualboyadvance", "Nintendo - GameBoy Advance"),
    ("mednafen", "Sony - PlayStation"),
    ("pcsx", "Sony - PlayStation"),
    ("openbor", "OpenBOR"),
    ("retroarch", "RetroArch"),
)

# Folder segment -> platform, checked in order (more specific names first)
FOLDER_PLATFORMS = (
    (("Repacks", "Games", "PC Games"), PC_PLATFORM),
    (("Wii U",), "Nintendo - Wii U"),
    (("Wii",), "Nintendo - WII"),
    (("Switch",), SWITCH_PLATFORM),
    (("Xbox 360",), "Microsoft - Xbox 360"),
    (("Xbox One",), "Microsoft - Xbox One"),
    (("Xbox Series",), "Microsoft - Xbox Series"),
    (("Xbox Live Arcade",), "Microsoft - Xbox Live Arcade"),
    (("Xbox Live Indie",), "Microsoft - Xbox Live Indie"),
    (("Xbox",), "Microsoft - Xbox"),
    (("PlayStation 3", "PS3"), "Sony - PlayStation 3"),
    (("PlayStation 4", "PS4"), "Sony - PlayStation 4"),
    (("PlayStation 5", "PS5"), "Sony - PlayStation 5"),
    (("PlayStation Vita", "PSV"), "Sony - PlayStation Vita"),
    (("PlayStation Portable", "PSP"), "Sony - PlayStation Portable"),
    (("PlayStation 2", "PS2"), "Sony - PlayStation 2"),
    (("PlayStation", "PS1"), "Sony - PlayStation"),
    (("3DS",), "Nintendo - 3DS"),
    (("DSi",), "Nintendo - DSi"),
    (("DS",), "Nintendo - DS"),
    (("GameCube",), "Nintendo - GameCube"),
    (("SNES",), "Nintendo - SNES"),
    (("NES",), "Nintendo - NES"),
    (("GameBoy Advance",), "Nintendo - GameBoy Advance"),
    (("GameBoy Color",), "Nintendo - GameBoy Color"),
    (("GameBoy",), "Nintendo - GameBoy"),
    (("Arcade",), "Arcade"),
    (("OpenBOR",), "OpenBOR"),
    (("RetroArch",), "RetroArch"),
)

# Achievement definition / stats files
NEVER_UNLOCKED = "0001-01-01T00:00:00"
STATS_FILE_NAME = "stats.json"
LOG_LINE_MARKERS = ("Room: match", "Report: {")
ORDINAL_TOKENS = (("1st", 1), ("2nd", 2), ("3rd", 3))

# Where Steam emulators drop their unlock files, relative to %APPDATA%
STEAM_EMULATOR_SAVE_DIRS = (
    ("GSE Saves",),
    ("Goldberg SteamEmu Saves",),
    ("SmartSteamEmu",),
    ("Steam", "Codex"),
)

STORE_LAUNCH_MARKER = "STEAM_LAUNCH"
