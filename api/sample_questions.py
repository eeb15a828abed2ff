"""
api/sample_questions.py — 리더십 진단 샘플 문항 풀

likert 문항은 1(전혀 아니다) ~ 5(매우 그렇다) 척도.
version_availability 를 지정하지 않은 문항은 quick/deep 모두에서 쓴다.
"""

from leadership_assessment.models.question_model import PoolQuestion, QuestionOption

_DEEP_ONLY = ["deep"]


def _likert(qid: str, dimension: str, text: str, **kw) -> PoolQuestion:
    return PoolQuestion(id=qid, type="likert", dimension=dimension, text=text, **kw)


def _choice(qid: str, qtype: str, dimension: str, text: str, options: list[tuple[str, str]], **kw) -> PoolQuestion:
    return PoolQuestion(
        id=qid,
        type=qtype,
        dimension=dimension,
        text=text,
        options=[QuestionOption(key=k, text=t) for k, t in options],
        **kw,
    )


SAMPLE_POOL: list[PoolQuestion] = [
    # ── drive ───────────────────────────────────────────────────────────────
    _likert("drv-01", "drive", "When a job falls behind schedule, I'm the first one to push for a recovery plan."),
    _likert("drv-02", "drive", "I set targets for my crew that are a little beyond what we did last month."),
    _likert("drv-03", "drive", "I follow up on open punch-list items without being reminded."),
    _likert("drv-04", "drive", "Slow weeks bother me more than busy ones.", version_availability=_DEEP_ONLY),

    # ── resilience ──────────────────────────────────────────────────────────
    _likert("res-01", "resilience", "After a failed inspection, I can reset the crew's mood by the next morning."),
    _likert("res-02", "resilience", "A client yelling on site does not change how I make decisions."),
    _likert("res-03", "resilience", "I keep a steady pace even when three jobs go sideways in the same week."),
    _likert("res-04", "resilience", "I recover quickly from losing a bid I expected to win.", version_availability=_DEEP_ONLY),

    # ── vision ──────────────────────────────────────────────────────────────
    _likert("vis-01", "vision", "I can describe where the business should be in three years."),
    _likert("vis-02", "vision", "I think about which jobs we should stop taking, not just which to win."),
    _likert("vis-03", "vision", "My crew knows why we do things the way we do."),
    _likert("vis-04", "vision", "I block out time to plan that is not tied to a current job.", version_availability=_DEEP_ONLY),

    # ── connection ──────────────────────────────────────────────────────────
    _likert("con-01", "connection", "I know what is going on in my crew members' lives outside of work."),
    _likert("con-02", "connection", "People on my crew come to me with problems before they become emergencies."),
    _likert("con-03", "connection", "I make a point of thanking people for specific work, not just 'good job'."),
    _likert("con-04", "connection", "Subcontractors ask to work with my crew again.", version_availability=_DEEP_ONLY),

    # ── adaptability ────────────────────────────────────────────────────────
    _likert("ada-01", "adaptability", "When a material is back-ordered, I have a workaround before lunch."),
    _likert("ada-02", "adaptability", "I'm willing to try a new tool or process even if the old one still works."),
    _likert("ada-03", "adaptability", "Changing the schedule mid-week does not throw me off."),
    _likert("ada-04", "adaptability", "I change my approach depending on which crew member I'm talking to.", version_availability=_DEEP_ONLY),

    # ── integrity ───────────────────────────────────────────────────────────
    _likert("int-01", "integrity", "I tell a client about a mistake before they find it."),
    _likert("int-02", "integrity", "I hold myself to the same rules I set for my crew."),
    _likert("int-03", "integrity", "I've turned down work because the timeline would have forced corners to be cut."),
    _likert("int-04", "integrity", "My estimates are the numbers I actually believe.", version_availability=_DEEP_ONLY),

    # ── situational ─────────────────────────────────────────────────────────
    _choice(
        "sit-01", "situational", "connection",
        "Your best tradesperson has been showing up late for a week. What do you do first?",
        [
            ("a", "Pull them aside and ask what's going on"),
            ("b", "Remind the whole crew about start times"),
            ("c", "Dock the time and move on"),
            ("d", "Wait and see if it continues"),
        ],
    ),
    _choice(
        "sit-02", "situational", "adaptability",
        "A client asks for a change that will push the finish date by two weeks. You:",
        [
            ("a", "Agree and re-plan the schedule tonight"),
            ("b", "Price the change and let them decide"),
            ("c", "Push back and suggest a smaller change"),
        ],
    ),
    _choice(
        "sit-03", "situational", "integrity",
        "You notice an install from last month was done out of spec. Nobody else has noticed.",
        [
            ("a", "Call the client and schedule a fix"),
            ("b", "Fix it quietly on the next visit"),
            ("c", "Leave it unless it causes a problem"),
        ],
        version_availability=_DEEP_ONLY,
    ),

    # ── forced choice ───────────────────────────────────────────────────────
    _choice(
        "fc-01", "forced_choice", "drive",
        "Which describes you better?",
        [("a", "I finish what I start"), ("b", "I start what others won't")],
    ),
    _choice(
        "fc-02", "forced_choice", "vision",
        "Which describes you better?",
        [("a", "I plan the week before it starts"), ("b", "I handle the week as it comes")],
    ),
    _choice(
        "fc-03", "forced_choice", "resilience",
        "Which describes you better?",
        [("a", "Bad days roll off me"), ("b", "Bad days teach me something")],
        version_availability=_DEEP_ONLY,
    ),
]
