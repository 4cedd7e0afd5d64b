"""
Domain constants used across services/routers.
"""

# Paystack webhook events
EVENT_CHARGE_SUCCESS = "charge.success"
PAYSTACK_SIGNATURE_HEADER = "x-paystack-signature"

# Image derivative ladder (widths in px)
VARIANT_WIDTHS = (320, 640, 1280)
JPEG_QUALITY = 80
WEBP_QUALITY = 75

# Low-quality placeholder
LQIP_WIDTH = 20
LQIP_QUALITY = 50
LQIP_BLUR_RADIUS = 1

# Uploaded objects never change once written (keys are timestamped)
STORAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"

# Upload section that updates the agent profile photo instead of creating a slide
AGENT_SECTION = "agent"
AGENT_PROFILE_ID = "primary"
