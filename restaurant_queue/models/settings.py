from pydantic import BaseModel, Field

from restaurant_queue.models.enums import NotificationChannel, TemplateKey

DEFAULT_TEMPLATES: dict[TemplateKey, str] = {
    TemplateKey.BOOKING_CONFIRMATION: (
        "عميلنا {customerName}، تم تأكيد حجزك رقم {bookingId} في {branchName}. "
        "شكراً لاختيارك {restaurantName}."
    ),
    TemplateKey.TURN_REMINDER: (
        "عميلنا {customerName}، اقترب دورك! رقم حجزك هو {bookingId} وأمامك الآن "
        "شخص واحد فقط في قائمة الانتظار في {branchName}."
    ),
    TemplateKey.BOOKING_SEATED: "أهلاً بك {customerName}! سعداء بخدمتك في {branchName}.",
    TemplateKey.BOOKING_CANCELLED: (
        "عميلنا {customerName}، نأسف لإبلاغك بأنه تم إلغاء حجزك رقم {bookingId} "
        "في {branchName}."
    ),
    TemplateKey.CUSTOMER_CALL: (
        "عميلنا العزيز {customerName}، نرجو التوجه إلى موظف الاستقبال الآن. "
        "نحن في انتظارك في {branchName}."
    ),
    TemplateKey.POST_VISIT_FEEDBACK: (
        "شكراً لزيارتكم {restaurantName}! يسعدنا تقييمكم لنا على الرابط: {reviewLink} "
        "لأي ملاحظات، يمكنكم التواصل معنا مباشرة: {whatsappLink}"
    ),
}


class NotificationTemplates(BaseModel):
    booking_confirmation: str = DEFAULT_TEMPLATES[TemplateKey.BOOKING_CONFIRMATION]
    turn_reminder: str = DEFAULT_TEMPLATES[TemplateKey.TURN_REMINDER]
    booking_seated: str = DEFAULT_TEMPLATES[TemplateKey.BOOKING_SEATED]
    booking_cancelled: str = DEFAULT_TEMPLATES[TemplateKey.BOOKING_CANCELLED]
    customer_call: str = DEFAULT_TEMPLATES[TemplateKey.CUSTOMER_CALL]
    post_visit_feedback: str = DEFAULT_TEMPLATES[TemplateKey.POST_VISIT_FEEDBACK]

    def for_key(self, key: TemplateKey) -> str:
        return {
            TemplateKey.BOOKING_CONFIRMATION: self.booking_confirmation,
            TemplateKey.TURN_REMINDER: self.turn_reminder,
            TemplateKey.BOOKING_SEATED: self.booking_seated,
            TemplateKey.BOOKING_CANCELLED: self.booking_cancelled,
            TemplateKey.CUSTOMER_CALL: self.customer_call,
            TemplateKey.POST_VISIT_FEEDBACK: self.post_visit_feedback,
        }[key]


class MsegatConfig(BaseModel):
    enabled: bool = False
    user_name: str = ""
    api_key: str = ""
    user_sender: str = ""
    templates: NotificationTemplates = Field(default_factory=NotificationTemplates)


class KarzounConfig(BaseModel):
    enabled: bool = False
    appkey: str = ""
    authkey: str = ""
    templates: NotificationTemplates = Field(default_factory=NotificationTemplates)


# Credential fields that live in the encrypted config store in master-key mode
CHANNEL_SECRETS: dict[NotificationChannel, tuple[str, ...]] = {
    NotificationChannel.MSEGAT: ("user_name", "api_key", "user_sender"),
    NotificationChannel.KARZOUN: ("appkey", "authkey"),
}


class NotificationSettings(BaseModel):
    msegat: MsegatConfig = Field(default_factory=MsegatConfig)
    karzoun: KarzounConfig = Field(default_factory=KarzounConfig)
    remind_when_queue_position_is: int = Field(default=2, ge=1)

    @property
    def any_enabled(self) -> bool:
        return self.msegat.enabled or self.karzoun.enabled


class CustomerUiSettings(BaseModel):
    welcome_message: str = "أهلاً بك في مطعمي"
    max_guests: int = Field(default=10, ge=1)
    booking_enabled: bool = True
    show_seating_area: bool = True


class RestaurantSettings(BaseModel):
    """Restaurant-wide configuration edited by the admin."""

    restaurant_name: str = "مطعمي"
    logo_url: str = ""
    whatsapp_number: str = ""
    customer_ui: CustomerUiSettings = Field(default_factory=CustomerUiSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
