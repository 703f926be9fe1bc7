from storefront.models.user import User
from storefront.models.school import School
from storefront.models.buyer import Buyer
from storefront.models.product import Product
from storefront.models.pack import Pack, PackItem
from storefront.models.price_list import PriceList, PriceListItem
from storefront.models.discount import Discount, DiscountRedemption
from storefront.models.order_item import OrderItem
from storefront.models.order import Order
from storefront.models.payment import Payment
from storefront.models.stock_reservation import StockReservation
from storefront.models.order_event import OrderEvent

# add ALL models here
