from datetime import datetime
from typing import Dict, List, Optional

from keepmeontrack.schemas.suggestion import GoalBreakdown
from keepmeontrack.domain.dates import utcnow

DEFAULT_KEY = "default"

# Dropped before the second match attempt so "Run a Marathon" finds "run marathon"
FILLER_WORDS = {"a", "an", "the", "my", "to"}


def _habit(title, description, frequency, frequency_value, duration):
    return {
        "title": title, "description": description, "frequency": frequency,
        "frequency_value": frequency_value, "estimated_duration": duration,
    }


def _milestone(title, description, offset, completion_time):
    return {
        "title": title, "description": description,
        "target_date_offset": offset, "estimated_completion_time": completion_time,
    }


# Checked in insertion order; "default" is never matched by keyword
TEMPLATES: Dict[str, Dict[str, List[dict]]] = {
    "run marathon": {
        "habits": [
            _habit("Morning Run", "Start with 30-minute runs, gradually increasing distance", "daily", 1, "30-60 minutes"),
            _habit("Strength Training", "Focus on leg strength and core stability", "weekly", 3, "45 minutes"),
            _habit("Long Run", "Weekly long-distance run to build endurance", "weekly", 1, "1-3 hours"),
            _habit("Rest and Recovery", "Stretching, foam rolling, and adequate sleep", "daily", 1, "20 minutes"),
        ],
        "milestones": [
            _milestone("Complete First 5K", "Run your first 5K without stopping", 30, "2-4 weeks"),
            _milestone("Reach 10K Distance", "Successfully complete a 10K run", 60, "6-8 weeks"),
            _milestone("Half Marathon Ready", "Complete a 21K half marathon", 120, "12-16 weeks"),
            _milestone("Marathon Training Peak", "Complete longest training run (32K+)", 150, "18-20 weeks"),
        ],
    },
    "write book": {
        "habits": [
            _habit("Daily Writing", "Write at least 500 words every day", "daily", 1, "1-2 hours"),
            _habit("Research and Planning", "Research topics and plan upcoming chapters", "weekly", 2, "1 hour"),
            _habit("Edit and Review", "Review and edit previous chapters", "weekly", 1, "2 hours"),
            _habit("Reading in Genre", "Read books in your genre for inspiration", "daily", 1, "30 minutes"),
        ],
        "milestones": [
            _milestone("Complete Book Outline", "Finish detailed chapter-by-chapter outline", 14, "1-2 weeks"),
            _milestone("First Draft - 25% Complete", "Complete first quarter of your book", 45, "6-8 weeks"),
            _milestone("First Draft - 50% Complete", "Reach the halfway point of your first draft", 90, "12-14 weeks"),
            _milestone("Complete First Draft", "Finish the entire first draft of your book", 150, "20-24 weeks"),
            _milestone("Complete First Edit", "Finish comprehensive editing of your manuscript", 180, "24-28 weeks"),
        ],
    },
    "learn language": {
        "habits": [
            _habit("Daily Vocabulary Practice", "Learn 10 new words and review previous ones", "daily", 1, "20-30 minutes"),
            _habit("Grammar Exercises", "Practice grammar rules and sentence structure", "daily", 1, "15-25 minutes"),
            _habit("Speaking Practice", "Practice speaking with native speakers or apps", "weekly", 3, "30-45 minutes"),
            _habit("Listening Comprehension", "Watch shows, podcasts, or music in target language", "daily", 1, "30 minutes"),
        ],
        "milestones": [
            _milestone("Basic Vocabulary (500 words)", "Learn and retain 500 essential words", 30, "4-6 weeks"),
            _milestone("Hold Basic Conversation", "Have a 5-minute conversation with a native speaker", 60, "8-10 weeks"),
            _milestone("Intermediate Level (A2)", "Pass an A2 level proficiency test", 120, "16-20 weeks"),
            _milestone("Advanced Conversation", "Discuss complex topics fluently for 30+ minutes", 180, "24-28 weeks"),
        ],
    },
    "lose weight": {
        "habits": [
            _habit("Daily Exercise", "Engage in 30-45 minutes of physical activity", "daily", 1, "30-45 minutes"),
            _habit("Meal Planning", "Plan healthy meals and track calories", "weekly", 1, "1 hour"),
            _habit("Water Intake", "Drink at least 8 glasses of water daily", "daily", 1, "5 minutes"),
            _habit("Sleep Schedule", "Maintain consistent 7-8 hours of sleep", "daily", 1, "7-8 hours"),
        ],
        "milestones": [
            _milestone("First 5 Pounds Lost", "Achieve initial weight loss milestone", 21, "2-3 weeks"),
            _milestone("Establish Exercise Routine", "Complete 30 consecutive days of exercise", 30, "4-5 weeks"),
            _milestone("Halfway to Goal", "Reach 50% of your weight loss target", 90, "12-14 weeks"),
            _milestone("Target Weight Achieved", "Reach your goal weight", 180, "24-26 weeks"),
        ],
    },
    "start business": {
        "habits": [
            _habit("Market Research", "Research target market and competitors daily", "daily", 1, "1-2 hours"),
            _habit("Business Plan Development", "Work on business plan sections", "weekly", 3, "2 hours"),
            _habit("Networking", "Connect with potential customers and partners", "weekly", 2, "1 hour"),
            _habit("Skill Development", "Learn business and industry-specific skills", "daily", 1, "30-60 minutes"),
        ],
        "milestones": [
            _milestone("Business Idea Validation", "Validate your business concept with potential customers", 30, "3-4 weeks"),
            _milestone("Complete Business Plan", "Finish comprehensive business plan", 60, "8-10 weeks"),
            _milestone("Secure Initial Funding", "Obtain startup capital or investment", 120, "16-18 weeks"),
            _milestone("Launch MVP", "Launch minimum viable product", 180, "24-26 weeks"),
        ],
    },
    DEFAULT_KEY: {
        "habits": [
            _habit("Daily Practice", "Dedicate time daily to work towards your goal", "daily", 1, "30-60 minutes"),
            _habit("Weekly Review", "Review progress and adjust strategy", "weekly", 1, "30 minutes"),
            _habit("Skill Development", "Learn new skills related to your goal", "weekly", 3, "45 minutes"),
        ],
        "milestones": [
            _milestone("Foundation Complete", "Complete basic setup and initial learning", 30, "3-4 weeks"),
            _milestone("Intermediate Progress", "Reach 50% completion of your goal", 90, "12-14 weeks"),
            _milestone("Advanced Stage", "Reach 80% completion with refined skills", 150, "20-22 weeks"),
        ],
    },
}


def _without_fillers(text: str) -> str:
    return " ".join(word for word in text.split() if word not in FILLER_WORDS)


def match_template_key(goal_title: str) -> str:
    """First catalog key contained in the lowercased title, else "default"."""
    title = (goal_title or "").lower()
    candidates = (title, _without_fillers(title))
    for key in TEMPLATES:
        if key == DEFAULT_KEY:
            continue
        if any(key in candidate for candidate in candidates):
            return key
    return DEFAULT_KEY


def template_breakdown(goal_title: str, now: Optional[datetime] = None) -> GoalBreakdown:
    template = TEMPLATES[match_template_key(goal_title)]
    return GoalBreakdown(
        habits=template["habits"],
        milestones=template["milestones"],
        source="template",
        timestamp=now or utcnow(),
    )
