# Default catalogue, used when no session has been saved yet
INITIAL_VALUES = [
    "Adventure", "Authenticity", "Balance", "Community", "Compassion",
    "Competence", "Contribution", "Creativity", "Curiosity", "Determination",
    "Fairness", "Faith", "Fame", "Family", "Freedom", "Friendship", "Fun",
    "Growth", "Happiness", "Health", "Honesty", "Humor", "Influence",
    "Inner Harmony", "Justice", "Kindness", "Knowledge", "Leadership",
    "Learning", "Love", "Loyalty", "Meaningful Work", "Openness", "Optimism",
    "Peace", "Pleasure", "Poise", "Popularity", "Recognition", "Religion",
    "Reputation", "Respect", "Responsibility", "Security", "Self-Respect",
    "Service", "Spirituality", "Stability", "Success", "Status",
    "Trustworthiness", "Wealth", "Wisdom",
]

# Glicko-lite
DEFAULT_RATING = 1500.0
DEFAULT_RD = 350.0
MIN_RD = 50.0
RD_DECAY = 0.95
K_BASE = 40.0
CONFIDENT_MULTIPLIER = 1.5
INFERRED_MULTIPLIER = 0.5
VOLATILITY_SCALE = 700.0

# Timing (milliseconds)
CONFIDENT_THRESHOLD_MS = 3000
HARD_CHOICE_THRESHOLD_MS = 10000

# Matchmaking
DISCOVERY_CUTOFF = 20

# Persisted session schema
SESSION_VERSION = 1

# Progress curve
ENCOURAGEMENTS = [
    (0, "Let's find out what drives you."),
    (10, "Trust your gut instinct."),
    (25, "Hard choices reveal true priorities."),
    (50, "Building a map of your soul..."),
    (80, "Core values identified. Refining details..."),
    (90, "High precision mode."),
    (95, "Excellent confidence. Stopping is allowed!"),
    (99, "Pure perfectionism now."),
]
PERFECTIONIST_NOTE = "100% requires ~1,300 matches"
