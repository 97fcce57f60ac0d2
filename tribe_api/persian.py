"""
Persian formatting helpers for prices, discounts and product labels.
"""
from typing import Union

Number = Union[int, float]

_PERSIAN_DIGITS = str.maketrans({
    '0': '۰', '1': '۱', '2': '۲', '3': '۳', '4': '۴',
    '5': '۵', '6': '۶', '7': '۷', '8': '۸', '9': '۹',
})

# fa-IR grouping / decimal separators
_FA_SEPARATORS = str.maketrans({',': '٬', '.': '٫'})

PRODUCT_TYPES = {
    'course': 'دوره',
    'ebook': 'کتاب الکترونیکی',
    'workshop': 'کارگاه',
    'physical': 'محصول فیزیکی',
}

PRODUCT_CTAS = {
    'course': 'شرکت در دوره',
    'ebook': 'دانلود کتاب',
    'workshop': 'ثبت نام کارگاه',
    'physical': 'خرید محصول',
}

FREE_LABEL = 'رایگان'
FREE_CTA = 'دریافت رایگان'
DEFAULT_CTA = 'مشاهده محصول'
CURRENCY = 'تومان'


def to_persian_numbers(value: Union[str, Number]) -> str:
    """Replace ASCII digits with Persian digits; everything else is kept."""
    return str(value).translate(_PERSIAN_DIGITS)


def format_fa_number(value: Number) -> str:
    """Group and localize a number the way the fa-IR locale prints it (max 3 fraction digits)."""
    rounded = round(float(value), 3)
    if rounded.is_integer():
        text = f"{int(rounded):,}"
    else:
        text = f"{rounded:,.3f}".rstrip('0')
    return to_persian_numbers(text.translate(_FA_SEPARATORS))


def format_persian_price(price: Number) -> str:
    if price == 0:
        return FREE_LABEL
    return f"{format_fa_number(price)} {CURRENCY}"


def format_persian_discount(percentage: Number) -> str:
    return f"{to_persian_numbers(percentage)}% تخفیف"


def get_persian_product_type(product_type: str) -> str:
    return PRODUCT_TYPES.get(product_type, product_type)


def get_product_cta(product_type: str, price: Number) -> str:
    if price == 0:
        return FREE_CTA
    return PRODUCT_CTAS.get(product_type, DEFAULT_CTA)
