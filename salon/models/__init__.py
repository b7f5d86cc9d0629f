# Import all models here for easier imports elsewhere
from .user import User, AdminGrant, DeviceToken
from .service import Service
from .appointment import Appointment, ChatMessage
from .promotion import Promotion
from .availability import BusinessHours
from .site_config import (ThemeSettings, HeroBanner, SocialLinks, BusinessLocation,
                          NotificationSettings, GalleryImage)
from .audit import AuditLog
