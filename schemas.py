"""
Database Schemas for the SAZO storefront

Each Pydantic model represents a MongoDB collection. The collection name is the
lowercased class name. Request/response bodies live next to the collection they
write to.
"""
from pydantic import BaseModel, Field, EmailStr, model_validator
from typing import Optional, List, Literal

OrderStatus = Literal["Pending", "Confirmed", "Shipped", "Delivered", "Cancelled"]
PaymentMethod = Literal["COD", "Online"]

FREE_SIZE = "Free"
DEFAULT_DISPLAY_ORDER = 1000


class Product(BaseModel):
    name: str
    category: str
    price: int = Field(..., ge=0, description="Whole currency units")
    description: str
    fabric: str
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list, description=f"May contain '{FREE_SIZE}' for one-size")
    is_new_arrival: bool = False
    is_trending: bool = False
    on_sale: bool = False
    images: List[str] = Field(default_factory=list, description="First image is primary")
    display_order: int = Field(DEFAULT_DISPLAY_ORDER, description="Lower sorts first")


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    fabric: Optional[str] = None
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    is_new_arrival: Optional[bool] = None
    is_trending: Optional[bool] = None
    on_sale: Optional[bool] = None
    images: Optional[List[str]] = None
    display_order: Optional[int] = None


class CartItem(BaseModel):
    """Snapshot of a product line taken when it was added to the cart."""
    product_id: str
    name: str
    price: int = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: Optional[str] = None
    size: str


class ShippingOption(BaseModel):
    id: str
    label: str
    charge: int = Field(0, ge=0)


class PaymentDetails(BaseModel):
    payment_number: str = Field(..., min_length=1, description="Sending phone number")
    method: str = Field(..., min_length=1, description="e.g. Bkash, Nagad")
    amount: int = Field(..., ge=0)
    transaction_id: str = Field(..., min_length=1)


class CustomerDetails(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = ""


class PaymentInfo(BaseModel):
    payment_method: PaymentMethod
    payment_details: Optional[PaymentDetails] = None

    @model_validator(mode="after")
    def details_match_method(self):
        if self.payment_method == "Online" and self.payment_details is None:
            raise ValueError("payment_details are required for online payment")
        if self.payment_method == "COD":
            self.payment_details = None
        return self


class OrderCreate(BaseModel):
    customer_details: CustomerDetails
    cart_items: List[CartItem]
    total: int = Field(..., ge=0)
    payment_info: PaymentInfo
    shipping_option_id: Optional[str] = None


class Order(BaseModel):
    order_id: str = Field(..., pattern=r"^\d{5,7}$")
    customer_name: str
    phone: str
    address: str
    city: str = ""
    cart_items: List[CartItem]
    total: int
    payment_method: PaymentMethod
    payment_details: Optional[PaymentDetails] = None
    shipping_option_id: Optional[str] = None
    status: OrderStatus = "Pending"
    date: str = Field(..., description="YYYY-MM-DD of creation")


class StatusUpdate(BaseModel):
    status: OrderStatus


class SliderImage(BaseModel):
    id: int
    title: str = ""
    subtitle: str = ""
    color: str = ""
    image: str = ""
    mobile_image: Optional[str] = None


class CategoryImage(BaseModel):
    category_name: str
    image: str = ""


class SocialMediaLink(BaseModel):
    platform: str
    url: str


class TextStyles(BaseModel):
    font_size: str = "0.875rem"


class Settings(BaseModel):
    """Singleton store configuration. admin_password holds a bcrypt hash."""
    online_payment_info: str = ""
    online_payment_info_styles: TextStyles = Field(default_factory=TextStyles)
    cod_enabled: bool = True
    online_payment_enabled: bool = True
    online_payment_methods: List[str] = Field(default_factory=list)
    slider_images: List[SliderImage] = Field(default_factory=list)
    category_images: List[CategoryImage] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    shipping_options: List[ShippingOption] = Field(default_factory=list)
    product_page_promo_image: str = ""
    contact_address: str = ""
    contact_phone: str = ""
    contact_email: str = ""
    whatsapp_number: str = ""
    show_whatsapp_button: bool = False
    show_city_field: bool = True
    social_media_links: List[SocialMediaLink] = Field(default_factory=list)
    privacy_policy: str = ""
    admin_email: str = ""
    admin_password: str = ""
    footer_description: str = ""
    homepage_new_arrivals_count: int = 4
    homepage_trending_count: int = 4


class SettingsUpdate(BaseModel):
    online_payment_info: Optional[str] = None
    online_payment_info_styles: Optional[TextStyles] = None
    cod_enabled: Optional[bool] = None
    online_payment_enabled: Optional[bool] = None
    online_payment_methods: Optional[List[str]] = None
    slider_images: Optional[List[SliderImage]] = None
    category_images: Optional[List[CategoryImage]] = None
    categories: Optional[List[str]] = None
    shipping_options: Optional[List[ShippingOption]] = None
    product_page_promo_image: Optional[str] = None
    contact_address: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    whatsapp_number: Optional[str] = None
    show_whatsapp_button: Optional[bool] = None
    show_city_field: Optional[bool] = None
    social_media_links: Optional[List[SocialMediaLink]] = None
    privacy_policy: Optional[str] = None
    admin_email: Optional[EmailStr] = None
    admin_password: Optional[str] = Field(None, description="Plain text; hashed before storing")
    footer_description: Optional[str] = None
    homepage_new_arrivals_count: Optional[int] = Field(None, ge=0)
    homepage_trending_count: Optional[int] = Field(None, ge=0)


class ContactMessageIn(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    message: str = Field(..., min_length=1)


class ContactMessage(ContactMessageIn):
    date: str
    is_read: bool = False


class ReadUpdate(BaseModel):
    is_read: bool


class AdminLogin(BaseModel):
    email: EmailStr
    password: str


class Session(BaseModel):
    token: str
    email: str
