"""
Domain-split Pydantic schemas with a single aggregator.

Routers import `from erp.db import schemas` and reach every request and
response model through this package.
"""

from .users import (
    UserBase,
    UserProfileUpdate,
    User,
    UserRoleUpdate,
    UserDepartmentUpdate,
    DepartmentBase,
    DepartmentCreate,
    DepartmentUpdate,
    Department,
)
from .permissions import RolePermission, RolePermissionUpdate
from .customers import CustomerBase, CustomerCreate, CustomerUpdate, Customer
from .inventory import (
    ProductBase,
    ProductCreate,
    ProductUpdate,
    Product,
    RawMaterialBase,
    RawMaterialCreate,
    RawMaterialUpdate,
    RawMaterial,
    MaterialTransactionCreate,
    MaterialTransaction,
    RecipeLineCreate,
    RecipeLineUpdate,
    RecipeLine,
    ProductRecipe,
    MaterialConsumptionResult,
)
from .orders import (
    OrderItemCreate,
    OrderItem,
    OrderCreate,
    OrderUpdate,
    OrderStatusUpdate,
    Order,
    OrderDetail,
)
from .production import (
    ProductionOrderBase,
    ProductionOrderCreate,
    ProductionOrderUpdate,
    ProductionStatusUpdate,
    ProductionOrder,
    ProductionOrderDetail,
    ProductionProcessCreate,
    ProductionProcessUpdate,
    ProductionProcess,
)
from .tasks import (
    TaskBase,
    TaskCreate,
    TaskUpdate,
    TaskAssignment,
    Task,
    TaskDetail,
    EmailDispatchResult,
    TaskCreateResponse,
    AssigneeAdd,
    AssignmentDecline,
    MyAssignmentUpdate,
    TaskEmailRequest,
)
from .notifications import (
    UserNotificationPreferenceUpdate,
    UserNotificationPreference,
    Notification,
    EmailNotificationLog,
    NotificationListResponse,
    NotificationStatsResponse,
    MarkAllReadResponse,
    NotificationPreferencesResponse,
)
from .audits import AuditLogCreate, AuditLog, ChangedField, AuditLogDetail
from .reports import ReportRequest, Report, ReportPreview, GeneratedReport
