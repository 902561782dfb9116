UNKNOWN_AUTHOR = "unknown"

# Normalized alias key -> canonical author name. Keys must already be in
# normalized form (lowercase ascii letters and digits only).
AUTHOR_ALIASES: dict[str, str] = {
    "mrmiagi": "MrMiagi",
    "yukiishida": "Yuk11sh1d4",
    "yuk11sh1d4": "Yuk11sh1d4",
    "linr": "Linr",
    "hcoel": "HCoel",
    "hardcracker": "Hardcracker",
    "mrperhaps": "MrPerhaps",
    "nimloth": "Nimloth",
    "sloth": "Sloth",
    "synae": "Synae",
    "qi": "Qi齊",
    "anextra": "AnExtra",
    "hiccup": "Hiccup",
    "rikudouray": "RikudouRay",
    "muslimwomen": "Muslimwomen",
    "selin86": "Selin86",
    "mahdicc": "Mahdicc",
    "bbman": "BBman",
    "minki": "Minki",
}

MSG_NO_DRAFTS = "No mods found in this folder"
MSG_NOTHING_TO_IMPORT = "Nothing to import: no author folders found in the library folders"
MSG_BULK_FINISHED = "Bulk import finished"
MSG_PREPARING = "Preparing..."
