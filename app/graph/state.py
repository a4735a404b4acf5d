from typing import TypedDict, Dict, List, Optional

class TurnState(TypedDict):
    session_id: str
    text: str
    language: str

    command: Optional[str]
    intent: Optional[Dict]
    extraction: Optional[Dict]

    route: Optional[str]
    flow: Optional[str]
    progress: Optional[List[int]]
    asked: Optional[str]

    reply: Optional[str]
    agent_type: Optional[str]
    result: Optional[Dict]
    actions: List[str]

    decision_log: List[str]
