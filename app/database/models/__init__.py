from app.database.models.common import Owner
from app.database.models.user_model import User, PermissionGrant
from app.database.models.client_model import Client
from app.database.models.question_model import Question, Prerequisite, QuestionTypeEnum, ValidationFactorEnum
from app.database.models.section_model import Section
from app.database.models.form_model import FormTemplate
from app.database.models.loan_application_model import LoanApplication, LoanStatusEnum
from app.database.models.screening_model import Screening
from app.database.models.acat_model import AssetCapture
from app.database.models.cycle_history_model import CycleHistory, CycleEntry
from app.database.models.task_model import Task, TaskTypeEnum, TaskStatusEnum
from app.database.models.notification_model import Notification
from app.database.models.audit_log_model import AuditLog

DOCUMENT_MODELS = [
    User,
    Client,
    Question,
    Section,
    FormTemplate,
    LoanApplication,
    Screening,
    AssetCapture,
    CycleHistory,
    Task,
    Notification,
    AuditLog,
]
