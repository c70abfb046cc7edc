from .ai import (AIStatusResponse, HabitInsight, HabitSuggestion, InsightRequest, MotivationRequest,
                 MotivationResponse, SuggestionRequest)
from .analytics import (CategoryShareResponse, DashboardResponse, DayPointResponse, DayStatusResponse,
                        HabitCompletionResponse, HabitStreakResponse, MonthSummaryResponse, StreaksResponse,
                        WeekPointResponse)
from .common import CamelModel, dump, envelope
from .entry import (CompletionStatsResponse, EntryBulk, EntryCreate, EntryResponse, EntryToggle, EntryUpdate,
                    ExportEntryResponse)
from .habit import (BulkCreateError, CategoryResponse, HabitBulkCreate, HabitCreate, HabitResponse,
                    HabitStatsBlock, HabitUpdate, HabitWithStatsResponse)
from .settings import SettingsUpdate, UserSettings
