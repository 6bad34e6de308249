from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


# ---------------- Auth ----------------
class UserCreate(BaseModel):
    firstName: str = Field(..., min_length=1, max_length=50)
    lastName: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: str = Field("candidate", pattern="^(candidate|interviewer)$")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class PasswordChange(BaseModel):
    currentPassword: str
    newPassword: str = Field(..., min_length=6)


# ---------------- Profile ----------------
class ProfileDetails(BaseModel):
    experience: Optional[str] = Field(None, pattern="^(fresher|1-3|3-5|5-10|10\\+)$")
    skills: Optional[List[str]] = None
    bio: Optional[str] = Field(None, max_length=500)


class ProfileUpdate(BaseModel):
    firstName: Optional[str] = Field(None, min_length=1, max_length=50)
    lastName: Optional[str] = Field(None, min_length=1, max_length=50)
    profile: Optional[ProfileDetails] = None


# ---------------- Interview sessions ----------------
class InterviewCreate(BaseModel):
    title: str = "Mock Interview Session"
    skills: List[str] = []
    duration: int = Field(30, gt=0)
    difficulty: str = Field("intermediate", pattern="^(beginner|intermediate|advanced)$")
    type: str = Field("technical", pattern="^(technical|behavioral|mixed)$")
    questionCount: int = 5
    resumeContent: str = ""
    useResume: bool = False
    scheduled: bool = False


class AnswerSubmit(BaseModel):
    questionId: str
    answer: str
    timeSpent: int = Field(0, ge=0)


class AssessRequest(BaseModel):
    questionIndex: int = Field(..., ge=0)
    candidateAnswer: str
    timeSpent: int = Field(0, ge=0)  # seconds


class FollowUpRequest(BaseModel):
    questionId: str


class SuggestionRequest(BaseModel):
    context: Optional[str] = ""
    duration: int = Field(0, ge=0)  # seconds since the interview started
    notes: Optional[str] = ""


# ---------------- Interview guides ----------------
class GuideQuestionIn(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    tags: List[str] = []
    codeExample: Optional[str] = ""
    references: List[str] = []
    order: Optional[int] = None


class GuideQuestionUpdate(BaseModel):
    questionId: str
    question: Optional[str] = None
    answer: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    codeExample: Optional[str] = None
    references: Optional[List[str]] = None
    order: Optional[int] = None


class GuideCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    domain: str = Field(..., min_length=1)
    technology: str = Field(..., min_length=1)
    difficulty: str = Field(..., pattern="^(beginner|intermediate|advanced|expert)$")
    questions: List[GuideQuestionIn] = []
    tags: List[str] = []
    isPublished: bool = False


class GuideUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    domain: Optional[str] = None
    technology: Optional[str] = None
    difficulty: Optional[str] = Field(None, pattern="^(beginner|intermediate|advanced|expert)$")
    tags: Optional[List[str]] = None
    isPublished: Optional[bool] = None


class VoteRequest(BaseModel):
    voteType: str = Field(..., pattern="^(upvote|downvote)$")


# ---------------- Skills ----------------
class SkillIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., pattern="^(programming|framework|database|tool|soft-skill|other)$")
    description: Optional[str] = Field(None, max_length=500)
    level: str = Field("intermediate", pattern="^(beginner|intermediate|advanced)$")
    isActive: bool = True


# ---------------- Scheduling ----------------
class ScheduleCreate(BaseModel):
    title: str = Field(..., min_length=1)
    scheduledAt: datetime
    description: Optional[str] = ""
    duration: int = Field(60, gt=0)
    interviewerId: Optional[str] = None
    meetingLink: Optional[str] = None


class ScheduleUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    scheduledAt: Optional[datetime] = None
    duration: Optional[int] = Field(None, gt=0)
    status: Optional[str] = Field(None, pattern="^(scheduled|confirmed|completed|cancelled)$")
    meetingLink: Optional[str] = None
    notes: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)


class CandidateInvite(BaseModel):
    candidateName: str = Field(..., min_length=1)
    candidateEmail: EmailStr
    skills: List[str]
    scheduledAt: datetime
    duration: int = 60
    notes: Optional[str] = ""
    meetingLink: Optional[str] = None


# ---------------- Interviewer workspace ----------------
class CustomQuestion(BaseModel):
    question: str
    expectedAnswer: Optional[str] = ""
    timeLimit: str = "3"
    assessmentCriteria: List[str] = ["technical_accuracy"]


class TemplateIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = ""
    type: str = Field("technical", pattern="^(technical|behavioral|mixed)$")
    difficulty: str = Field("intermediate", pattern="^(beginner|intermediate|advanced)$")
    duration: int = Field(30, ge=15, le=120)
    skills: List[str]
    questionCount: int = Field(5, ge=1, le=20)
    autoGenerate: bool = True
    customQuestions: List[CustomQuestion] = []


class NotificationPreferences(BaseModel):
    emailReminders: bool = True
    smsReminders: bool = False
    beforeInterviewHours: int = Field(24, ge=1, le=72)


class InterviewerConfigIn(BaseModel):
    defaultDuration: int = Field(30, ge=15, le=120)
    defaultDifficulty: str = Field("intermediate", pattern="^(beginner|intermediate|advanced)$")
    autoGenerateQuestions: bool = True
    aiAssistanceEnabled: bool = True
    recordInterviews: bool = False
    allowCandidateRescheduling: bool = True
    notificationPreferences: NotificationPreferences = NotificationPreferences()


# ---------------- Admin ----------------
class AdminUserCreate(BaseModel):
    firstName: str = Field(..., min_length=1, max_length=50)
    lastName: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: str = Field("candidate", pattern="^(candidate|interviewer|admin)$")
    isActive: bool = True


class AdminUserUpdate(BaseModel):
    firstName: str = Field(..., min_length=1, max_length=50)
    lastName: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: Optional[str] = Field(None, min_length=6)
    role: Optional[str] = Field(None, pattern="^(candidate|interviewer|admin)$")
    isActive: Optional[bool] = None


class SettingsUpdate(BaseModel):
    siteName: str = Field(..., min_length=1)
    siteDescription: Optional[str] = ""
    contactEmail: EmailStr
    enableRegistration: bool = True
    enableEmailNotifications: bool = True
    maxSessionsPerUser: int = Field(10, ge=1)
    sessionTimeoutMinutes: int = Field(60, ge=5)
    enableAnalytics: bool = True
    maintenanceMode: bool = False


class ReminderRequest(BaseModel):
    daysSinceLastInterview: int = Field(7, ge=1)
    maxReminders: int = Field(50, ge=1)
