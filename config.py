# config.py
import os


class Config:
    # Cache policy pages
    cache_size = 4              # default number of slots per cache
    sequence_length = 12        # length of generated access sequences
    possible_values = ["A", "B", "C", "D", "E", "F"]
    two_q_threshold = 3         # max A1 size before 2Q evicts from A1

    # Randomness (Random policy, generated sequences, colours)
    random_seed = 369

    # Set-associative demo cache (32 bytes, 4-byte words)
    cache_size_bytes = 32
    word_size = 4
    block_size_words = 1
    ways = 2

    # Threads page
    playback_speed = 1.0        # driver ticks per UI refresh, scaled by the slider
    max_ticks_per_run = 50

    # Logging
    log_level = os.environ.get("VISUALIZER_LOG_LEVEL", "WARNING")
