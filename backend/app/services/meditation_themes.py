# Presentation themes for meditation categories.
# Categories are free text in the DB; anything unknown is shown as "calm".

DEFAULT_THEME = "calm"

THEMES = {
    "stress": {
        "color": "from-orange-500 to-red-500",
        "affirmation": "I release all tension and embrace calm.",
        "tips": [
            "Take slow, deep breaths",
            "Focus on relaxing each muscle group",
            "Let go of worries with each exhale",
            "Find your inner peace",
        ],
    },
    "sleep": {
        "color": "from-indigo-500 to-purple-500",
        "affirmation": "I drift into restful, peaceful sleep.",
        "tips": [
            "Close your eyes gently",
            "Let your body become heavy",
            "Release the day's tensions",
            "Welcome peaceful dreams",
        ],
    },
    "calm": {
        "color": "from-blue-500 to-cyan-500",
        "affirmation": "I am calm, centered, and peaceful.",
        "tips": [
            "Breathe naturally and slowly",
            "Feel the present moment",
            "Let thoughts pass like clouds",
            "Embrace inner tranquility",
        ],
    },
    "peace": {
        "color": "from-green-500 to-emerald-500",
        "affirmation": "Peace flows through my entire being.",
        "tips": [
            "Open your heart to positivity",
            "Connect with your inner self",
            "Feel gratitude and compassion",
            "Radiate peaceful energy",
        ],
    },
}


def theme_for(category: str | None) -> dict:
    key = (category or "").strip().lower()
    if key not in THEMES:
        key = DEFAULT_THEME
    return {"key": key, **THEMES[key]}
