"""Default catalog and store settings used to seed an empty database."""
import os

from schemas import Product, Settings

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@sazo.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "password123")


def _images(seed):
    return [f"https://picsum.photos/seed/{seed}{n}/400/500" for n in ("", "2", "3")]


SEED_PRODUCTS = [
    Product(name="Gulmohar Lawn Suit", category="Cotton", price=3500,
            description="Pure cotton lawn three-piece with exquisite embroidery and soft dupatta. Ideal for daily wear.",
            fabric="Lawn Cotton", colors=["Pastel Pink", "Beige", "Mint"], sizes=["S", "M", "L", "XL", "Free"],
            is_new_arrival=True, images=_images("gulmohar")),
    Product(name="Shalimar Silk Ensemble", category="Silk", price=6200,
            description="Elegant raw silk suit with delicate zari work. Perfect for evening occasions.",
            fabric="Raw Silk", colors=["Maroon", "Gold"], sizes=["36", "38", "40", "42"],
            is_new_arrival=True, is_trending=True, images=_images("shalimar")),
    Product(name="Party Princess Georgette", category="Party Wear", price=7800,
            description="Heavy georgette suit with stone embellishments. Ready for any celebration.",
            fabric="Georgette", colors=["Royal Blue", "Crimson"], sizes=["Free"],
            is_trending=True, on_sale=True, images=_images("georgette")),
    Product(name="Everyday Beige Cotton", category="Cotton", price=2800,
            description="Simple yet stylish cotton suit for comfortable daily use.",
            fabric="Cotton", colors=["Beige", "Lavender"], sizes=["38", "40", "42", "44", "46"],
            on_sale=True, images=_images("beige")),
    Product(name="Mogra Chiffon", category="Party Wear", price=5900,
            description="Flowy chiffon with printed motifs and lace detailing.",
            fabric="Chiffon", colors=["White", "Yellow"], sizes=["S", "M", "L"],
            is_trending=True, images=_images("mogra")),
    Product(name="Maharani Velvet", category="Party Wear", price=9500,
            description="Luxurious velvet three-piece with heavy sequin work. Ultimate festive attire.",
            fabric="Velvet", colors=["Navy", "Wine Red"], sizes=["38", "40", "42", "44", "Free"],
            is_new_arrival=True, is_trending=True, on_sale=True, images=_images("maharani")),
]


def default_settings(password_hash: str) -> Settings:
    return Settings(
        online_payment_info="Payment Number:\n<b>01909285883</b> (Personal)",
        cod_enabled=True,
        online_payment_enabled=True,
        online_payment_methods=["Bkash", "Nagad", "UPAY"],
        slider_images=[
            {"id": 1, "title": "The Festive Silk Collection", "subtitle": "Elegance and shimmer for every occasion.",
             "color": "text-pink-600", "image": "https://picsum.photos/seed/sazo-silk-fashion/1200/500"},
            {"id": 2, "title": "Comfortable Lawn Arrivals", "subtitle": "Breathe easy with our new cotton designs.",
             "color": "text-blue-600", "image": "https://picsum.photos/seed/sazo-lawn-style/1200/500"},
        ],
        category_images=[
            {"category_name": "Cotton", "image": "https://picsum.photos/seed/sazo-cotton-fabric/600/800"},
            {"category_name": "Silk", "image": "https://picsum.photos/seed/sazo-silk-dress/600/800"},
            {"category_name": "Party Wear", "image": "https://picsum.photos/seed/sazo-party-fashion/600/800"},
        ],
        categories=["Cotton", "Silk", "Party Wear"],
        shipping_options=[],
        contact_address="Avenue 12, Gulshan-1, Dhaka, Bangladesh",
        contact_phone="+880 17XX XXX XXX",
        contact_email="support@sazo.com",
        whatsapp_number="+8801700000000",
        show_whatsapp_button=True,
        show_city_field=True,
        social_media_links=[{"platform": "Facebook", "url": "#"}, {"platform": "Instagram", "url": "#"}],
        privacy_policy="We collect your name, address and phone number only to deliver your orders. "
                       "Contact us at {{CONTACT_EMAIL}} with any questions.",
        admin_email=ADMIN_EMAIL,
        admin_password=password_hash,
        footer_description="Discover elegance and style with SAZO.",
    )
