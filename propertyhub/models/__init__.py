from propertyhub.models.base import Base  # noqa: F401

from propertyhub.models.user import User  # noqa: F401
from propertyhub.models.api_key import ApiKey  # noqa: F401
from propertyhub.models.agent import Agent  # noqa: F401
from propertyhub.models.counter import Counter  # noqa: F401
from propertyhub.models.property import Property  # noqa: F401
from propertyhub.models.property_unit import PropertyUnit  # noqa: F401
from propertyhub.models.property_batch import PropertyBatch  # noqa: F401
from propertyhub.models.click_event import ClickEvent  # noqa: F401
from propertyhub.models.enquiry import Enquiry  # noqa: F401
from propertyhub.models.like import Like  # noqa: F401
from propertyhub.models.audit_log import AuditLog  # noqa: F401
