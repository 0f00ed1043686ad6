import os

# Reconciliation timer (seconds)
RECONCILE_INTERVAL_SECONDS = int(os.getenv("RECONCILE_INTERVAL_SECONDS", "600"))

# Time-range entries kept per app (oldest dropped first)
TIME_RANGE_RETENTION = int(os.getenv("TIME_RANGE_RETENTION", "100"))

# Entries kept per app by the usage-threshold handler
DETAILED_USAGE_RETENTION = 100

# Default limit for restored / newly monitored apps: 2 hours
DEFAULT_TIME_LIMIT_SECONDS = float(os.getenv("DEFAULT_TIME_LIMIT_SECONDS", str(2 * 3600)))

# Identity of the signed-in guardian for scheduled passes (empty -> no identity)
OWNER_ID = os.getenv("OWNER_ID", "")

# Remote collections
COLLECTION_DELETED_APPS = "deletedApps"
COLLECTION_APP_RESTRICTIONS = "appRestrictions"
COLLECTION_NEW_APP_DETECTIONS = "newAppDetections"

# Notification categories
CATEGORY_APP_DELETED = "appDeleted"
CATEGORY_NEW_APP_DETECTED = "newAppDetected"


APP_NAME_MAP = {
    # SNS
    "com.burbn.instagram": "Instagram",
    "com.zhiliaoapp.musically": "TikTok",
    "com.toyopagroup.picaboo": "Snapchat",
    "com.facebook.Facebook": "Facebook",
    "com.twitter.ios": "Twitter",
    "com.reddit.Reddit": "Reddit",
    "com.hammerandchisel.discord": "Discord",
    "com.whatsapp.WhatsApp": "WhatsApp",
    "com.apple.MobileSMS": "Messages",
    # VIDEO / MUSIC
    "com.google.ios.youtube": "YouTube",
    "com.netflix.Netflix": "Netflix",
    "com.spotify.client": "Spotify",
    # GAME
    "com.mojang.minecraftpe": "Minecraft",
    "com.roblox.client": "Roblox",
    "com.epicgames.fortnite": "Fortnite",
    "com.activision.callofduty.shooter": "Call of Duty",
    "com.tencent.ig": "PUBG",
    "com.mihoyo.genshinimpact": "Genshin Impact",
    "com.innersloth.spacemafia": "Among Us",
    # OTHER
    "com.apple.mobilesafari": "Safari",
}


def resolve_display_name(app_id: str) -> str:
    # Known name, otherwise the last component of the bundle id
    if app_id in APP_NAME_MAP:
        return APP_NAME_MAP[app_id]
    return app_id.split(".")[-1] or app_id


def composite_key(owner_id: str, app_id: str) -> str:
    return f"{owner_id}_{app_id}"
