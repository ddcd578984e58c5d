SUPPORTED_RAW_EXTENSIONS = {
    ".dng",
    ".cr2",
    ".cr3",
    ".nef",
    ".nrw",
    ".arw",
    ".srw",
    ".orf",
    ".rw2",
    ".pef",
    ".raf",
    ".3fr",
    ".iiq",
    ".erf",
    ".kdc",
    ".mos",
}

# rawpy colour descriptions use these letters for Bayer sensors
BAYER_COLOR_LETTERS = {"R": 0, "G": 1, "B": 2}
