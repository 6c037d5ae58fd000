from models.users import User
from models.product import Product
from models.stock import StockTransaction, TransactionType
from models.bill import Bill, BillItem, BillStatus
from models.sequence import SequenceCounter
from models.log import Log
