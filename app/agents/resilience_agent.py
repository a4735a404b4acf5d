# app/agents/resilience_agent.py
from typing import Any, Dict, Tuple

from app.agents.extraction_agent import SlotField
from app.agents.flow_engine import FlowSchema
from app.agents.risk_agent import assess_resilience, build_resilience_profile
from app.models.domain_models import AgentType, ImpactLevel, Language, Scenario
from app.models.responses import ResilienceResult
from app.schemas.profile_schemas import ResilienceProfile
from app.services.utils import format_inr, localized

EN, HI, TA = Language.EN, Language.HI, Language.TA

RESILIENCE_QUESTIONS = (
    SlotField.MONTHLY_INCOME,
    SlotField.MONTHLY_EXPENSES,
    SlotField.EMERGENCY_SAVINGS,
    SlotField.EXISTING_DEBT_MONTHLY,
    SlotField.CREDIT_SCORE,
    SlotField.EMPLOYMENT_STABILITY,
    SlotField.DEPENDENTS,
    SlotField.FINANCIAL_GOAL,
)

INTRO = {
    EN: "🛡️ **Financial Resilience Check**\n\nLet's see how well your finances can handle a shock like a job loss or a medical emergency.",
    HI: "🛡️ **वित्तीय मजबूती जांच**\n\nआइए देखें कि नौकरी छूटने या मेडिकल इमरजेंसी जैसे झटके को आपकी वित्तीय स्थिति कितना संभाल सकती है।",
    TA: "🛡️ **நிதி தாங்குதிறன் சோதனை**\n\nவேலை இழப்பு அல்லது மருத்துவ அவசரநிலை போன்ற அதிர்ச்சியை உங்கள் நிதிநிலை எவ்வளவு தாங்கும் என்று பார்ப்போம்.",
}

PROMPTS = {
    SlotField.MONTHLY_INCOME: {
        EN: "💰 Let's start with your financial snapshot. What is your approximate monthly income (after taxes)? (e.g., 50000)",
        HI: "💰 आइए आपकी वित्तीय स्थिति से शुरुआत करें। आपकी मासिक आय (करों के बाद) लगभग कितनी है? (जैसे 50000)",
        TA: "💰 உங்கள் நிதி நிலையிலிருந்து தொடங்குவோம். உங்கள் மாத வருமானம் (வரிக்குப் பிறகு) சுமார் எவ்வளவு? (எ.கா, 50000)",
    },
    SlotField.MONTHLY_EXPENSES: {
        EN: "📊 And what are your regular monthly expenses? (e.g., 30000)",
        HI: "📊 और आपके नियमित मासिक खर्च कितने हैं? (जैसे 30000)",
        TA: "📊 உங்கள் வழக்கமான மாத செலவுகள் எவ்வளவு? (எ.கா, 30000)",
    },
    SlotField.EMERGENCY_SAVINGS: {
        EN: "🏦 How much do you have saved as an emergency fund? (e.g., 100000, or 0 if none)",
        HI: "🏦 आपके पास इमरजेंसी फंड के रूप में कितना पैसा बचा है? (जैसे 100000, या कुछ नहीं तो 0)",
        TA: "🏦 அவசர நிதியாக உங்களிடம் எவ்வளவு சேமிப்பு உள்ளது? (எ.கா, 100000, இல்லையெனில் 0)",
    },
    SlotField.EXISTING_DEBT_MONTHLY: {
        EN: "📋 What is your total monthly debt obligation (EMIs, loans, credit cards)? (e.g., 8000, or 0)",
        HI: "📋 आपकी कुल मासिक कर्ज़ देनदारी (EMI, लोन, क्रेडिट कार्ड) कितनी है? (जैसे 8000, या 0)",
        TA: "📋 உங்கள் மொத்த மாத கடன் செலுத்துதல் (EMI, கடன்கள், கிரெடிட் கார்டுகள்) எவ்வளவு? (எ.கா, 8000, அல்லது 0)",
    },
    SlotField.CREDIT_SCORE: {
        EN: "⭐ What is your credit score? (300-900, e.g., 720)",
        HI: "⭐ आपका क्रेडिट स्कोर क्या है? (300-900, जैसे 720)",
        TA: "⭐ உங்கள் கிரெடிட் ஸ்கோர் என்ன? (300-900, எ.கா, 720)",
    },
    SlotField.EMPLOYMENT_STABILITY: {
        EN: "💼 How would you describe your job security? (High / Medium / Low)",
        HI: "💼 आप अपनी नौकरी की सुरक्षा को कैसे देखते हैं? (High / Medium / Low)",
        TA: "💼 உங்கள் வேலைப் பாதுகாப்பை எப்படி மதிப்பிடுவீர்கள்? (High / Medium / Low)",
    },
    SlotField.DEPENDENTS: {
        EN: "👨‍👩‍👧 How many people depend on your income? (e.g., 2)",
        HI: "👨‍👩‍👧 आपकी आय पर कितने लोग निर्भर हैं? (जैसे 2)",
        TA: "👨‍👩‍👧 உங்கள் வருமானத்தை எத்தனை பேர் சார்ந்திருக்கிறார்கள்? (எ.கா, 2)",
    },
    SlotField.FINANCIAL_GOAL: {
        EN: "🎯 What is your main financial goal right now? (e.g., Personal loan, Home loan, Business loan, or Just checking resilience)",
        HI: "🎯 अभी आपका मुख्य वित्तीय लक्ष्य क्या है? (जैसे Personal loan, Home loan, Business loan, या सिर्फ resilience check)",
        TA: "🎯 இப்போது உங்கள் முக்கிய நிதி இலக்கு என்ன? (எ.கா, Personal loan, Home loan, Business loan, அல்லது resilience check மட்டும்)",
    },
}

LABELS = {
    SlotField.MONTHLY_INCOME: {EN: "Income", HI: "आय", TA: "வருமானம்"},
    SlotField.MONTHLY_EXPENSES: {EN: "Expenses", HI: "खर्च", TA: "செலவுகள்"},
    SlotField.EMERGENCY_SAVINGS: {EN: "Emergency fund", HI: "इमरजेंसी फंड", TA: "அவசர நிதி"},
    SlotField.EXISTING_DEBT_MONTHLY: {EN: "Monthly debt", HI: "मासिक कर्ज़", TA: "மாத கடன்"},
    SlotField.CREDIT_SCORE: {EN: "Credit score", HI: "क्रेडिट स्कोर", TA: "கிரெடிட் ஸ்கோர்"},
    SlotField.EMPLOYMENT_STABILITY: {EN: "Job security", HI: "नौकरी की सुरक्षा", TA: "வேலைப் பாதுகாப்பு"},
    SlotField.DEPENDENTS: {EN: "Dependents", HI: "आश्रित", TA: "சார்ந்திருப்பவர்கள்"},
    SlotField.FINANCIAL_GOAL: {EN: "Goal", HI: "लक्ष्य", TA: "இலக்கு"},
}

COMPLETION = {
    EN: "✅ Perfect! I have all the information. Let me calculate your financial resilience...",
    HI: "✅ बढ़िया! मेरे पास सारी जानकारी है। अब मैं आपकी वित्तीय मजबूती की गणना करता हूं...",
    TA: "✅ அருமை! எல்லா தகவல்களும் கிடைத்துவிட்டன. உங்கள் நிதி தாங்குதிறனைக் கணக்கிடுகிறேன்...",
}

SCENARIO_NAMES = {
    EN: {
        Scenario.JOB_LOSS: "Job loss",
        Scenario.MEDICAL_EMERGENCY: "Medical emergency",
        Scenario.MARKET_CRASH: "Market crash",
        Scenario.INFLATION_SURGE: "Inflation surge",
        Scenario.COMBINED: "Combined shock",
    },
    HI: {
        Scenario.JOB_LOSS: "नौकरी छूटना",
        Scenario.MEDICAL_EMERGENCY: "मेडिकल इमरजेंसी",
        Scenario.MARKET_CRASH: "बाज़ार में गिरावट",
        Scenario.INFLATION_SURGE: "महंगाई में उछाल",
        Scenario.COMBINED: "संयुक्त झटका",
    },
    TA: {
        Scenario.JOB_LOSS: "வேலை இழப்பு",
        Scenario.MEDICAL_EMERGENCY: "மருத்துவ அவசரநிலை",
        Scenario.MARKET_CRASH: "சந்தை வீழ்ச்சி",
        Scenario.INFLATION_SURGE: "பணவீக்க உயர்வு",
        Scenario.COMBINED: "ஒருங்கிணைந்த அதிர்ச்சி",
    },
}

IMPACT_ICON = {
    ImpactLevel.LOW: "🟢",
    ImpactLevel.MEDIUM: "🟡",
    ImpactLevel.HIGH: "🟠",
    ImpactLevel.CRITICAL: "🔴",
}

REPORT_LABELS = {
    EN: {
        "title": "🛡️ **Your Financial Resilience Report**",
        "score": "📊 **Resilience Score:**",
        "risk": "🔰 **Risk Level:**",
        "survival": "⏱️ **Worst-case runway:**",
        "emergency": "🏦 **Emergency fund covers:**",
        "scenarios": "🧪 **Stress Tests:**",
        "risks": "⚠️ **Risk Factors:**",
        "strengths": "💪 **Strengths:**",
        "plan": "🛠️ **Recovery Plan ({scenario}):**",
        "months": "months",
        "closing": "Would you like a **detailed report** or to **continue chatting**?",
    },
    HI: {
        "title": "🛡️ **आपकी वित्तीय मजबूती रिपोर्ट**",
        "score": "📊 **मजबूती स्कोर:**",
        "risk": "🔰 **जोखिम स्तर:**",
        "survival": "⏱️ **सबसे खराब स्थिति में अवधि:**",
        "emergency": "🏦 **इमरजेंसी फंड की अवधि:**",
        "scenarios": "🧪 **तनाव परीक्षण:**",
        "risks": "⚠️ **जोखिम कारक:**",
        "strengths": "💪 **मजबूत पक्ष:**",
        "plan": "🛠️ **रिकवरी योजना ({scenario}):**",
        "months": "महीने",
        "closing": "क्या आप **विस्तृत रिपोर्ट** चाहते हैं या **चैट जारी** रखना चाहते हैं?",
    },
    TA: {
        "title": "🛡️ **உங்கள் நிதி தாங்குதிறன் அறிக்கை**",
        "score": "📊 **தாங்குதிறன் மதிப்பெண்:**",
        "risk": "🔰 **அபாய நிலை:**",
        "survival": "⏱️ **மோசமான சூழலில் தாங்கும் காலம்:**",
        "emergency": "🏦 **அவசர நிதி போதுமான காலம்:**",
        "scenarios": "🧪 **அழுத்த சோதனைகள்:**",
        "risks": "⚠️ **அபாய காரணிகள்:**",
        "strengths": "💪 **பலங்கள்:**",
        "plan": "🛠️ **மீட்பு திட்டம் ({scenario}):**",
        "months": "மாதங்கள்",
        "closing": "**விரிவான அறிக்கை** வேண்டுமா அல்லது **உரையாடலைத் தொடரலாமா**?",
    },
}


def render_resilience_report(profile: ResilienceProfile, result: ResilienceResult, language) -> str:
    t = localized(REPORT_LABELS, language)
    names = localized(SCENARIO_NAMES, language)
    months = t["months"]

    lines = [
        t["title"],
        "",
        f"{t['score']} {result.score}/100",
        f"{t['risk']} {result.risk_category.value}",
        f"{t['survival']} {result.survival_months} {months} ({names[result.worst_scenario]})",
        f"{t['emergency']} {result.emergency_months:g} {months} ({format_inr(profile.emergency_savings)})",
        "",
        t["scenarios"],
    ]
    for s in result.scenarios:
        lines.append(f"{IMPACT_ICON[s.impact_level]} {names[s.scenario]}: {s.survival_months} {months} ({s.impact_level.value})")
    if result.risk_factors:
        lines += ["", t["risks"]] + [f"• {factor}" for factor in result.risk_factors]
    if result.strengths:
        lines += ["", t["strengths"]] + [f"• {item}" for item in result.strengths]
    lines += ["", t["plan"].format(scenario=names[result.worst_scenario])]
    lines += [f"{i}. {step}" for i, step in enumerate(result.recovery_plan, 1)]
    lines += ["", t["closing"]]
    return "\n".join(lines)


def finish_resilience(slots: Dict[str, Any], language: Language) -> Tuple[str, ResilienceResult]:
    profile = build_resilience_profile(slots)
    result = assess_resilience(profile)
    return render_resilience_report(profile, result, language), result


RESILIENCE_FLOW = FlowSchema(
    name="resilience",
    agent_type=AgentType.RESILIENCE,
    fields=RESILIENCE_QUESTIONS,
    active_key="inResilienceFlow",
    started_key="resStarted",
    intro=INTRO,
    prompts=PROMPTS,
    labels=LABELS,
    completion=COMPLETION,
    finish=finish_resilience,
)
