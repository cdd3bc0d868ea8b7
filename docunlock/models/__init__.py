from docunlock.models.textbook import Textbook
from docunlock.models.section import Section
from docunlock.models.user_access import UserAccess
from docunlock.models.user_payment import UserPayment

# add ALL models here
