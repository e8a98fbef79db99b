"""Core constants for Moonshine ONNX inference.

Moonshine consumes raw 16kHz mono float32 samples (no feature extraction)
and emits byte-level BPE token ids.
"""

# Audio format requirements
SAMPLE_RATE: int = 16000  # Hz

# Reserved token ids
START_TOKEN: int = 1
END_TOKEN: int = 2

# Decode budget: speech rarely exceeds 6 tokens per second of audio
MAX_TOKENS_PER_SECOND: int = 6
MIN_TOKEN_COUNT: int = 1

# Decoder graph I/O naming conventions
PAST_KEY_VALUES_PREFIX: str = "past_key_values"
INPUT_IDS_NAME: str = "input_ids"
USE_CACHE_BRANCH_NAME: str = "use_cache_branch"
