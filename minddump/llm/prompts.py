"""Prompt text for thought analysis."""

from __future__ import annotations

import json

ANALYSIS_PROMPT = """You are a personal assistant that processes unstructured thoughts and files them into a categorization system. For each thought:

1. Classify it into exactly one of these categories:
   - Goal: personal or professional objectives
   - Habit: routines and behaviour tracking
   - ProjectIdea: apps, tools, features or businesses
   - Task: actionable to-dos
   - Reminder: time-based scheduling
   - Note: general information
   - Insight: personal realizations
   - Learning: study or research topics
   - Career: job goals and networking
   - Metric: self-tracking data
   - Idea: creative thoughts
   - System: frameworks and workflows
   - Automation: bots to build
   - Person: people, meetings, conversations
   - Sensitive: private entries
   - Uncategorized: fallback
2. Assign an optional subcategory and a priority (low/medium/high).
3. Extract action items.
4. Expand the thought with helpful detail.
5. Determine urgency and sentiment.
6. For technical project ideas, include technical details.

Respond with a single JSON object and nothing else:
{
  "category": "<one of the categories above>",
  "subcategory": "optional subcategory",
  "priority": "low" | "medium" | "high",
  "title": "brief descriptive title",
  "summary": "concise summary",
  "actions": ["action1", "action2"],
  "expandedThought": "detailed expansion of the original thought",
  "urgency": "low" | "medium" | "high",
  "sentiment": "positive" | "neutral" | "negative",
  "type": "project",
  "markdown": {"readme": "...", "projectOverview": "..."},
  "techStack": ["tech1", "tech2"],
  "features": ["feature1", "feature2"]
}

Only include type, markdown, techStack and features for ProjectIdea thoughts."""


def build_analysis_prompt(text: str) -> str:
    # json.dumps quotes the thought so embedded quotes cannot break out of it
    return f"{ANALYSIS_PROMPT}\n\nUser thought: {json.dumps(text, ensure_ascii=False)}"
