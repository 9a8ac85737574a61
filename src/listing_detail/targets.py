from __future__ import annotations

# Known product pages used for manual and opt-in live checks.
LIVE_URLS = [
    "https://www.alibaba.com/product-detail/Custom-Logo-Eco-Friendly-Bamboo-Toothbrush_62588837641.html",
    "https://www.alibaba.com/product-detail/High-Quality-OEM-ODM-Toothbrush-Holder_1600450628256.html",
]
