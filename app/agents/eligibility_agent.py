# app/agents/eligibility_agent.py
from typing import Any, Dict, Tuple

from app.agents.extraction_agent import SlotField
from app.agents.flow_engine import FlowSchema
from app.agents.underwriting_agent import (
    ELIGIBILITY_ANNUAL_RATE, build_eligibility_profile, score_eligibility,
)
from app.models.domain_models import AgentType, Language, Verdict
from app.models.responses import EligibilityResult
from app.schemas.profile_schemas import EligibilityProfile
from app.services.utils import format_inr, localized

EN, HI, TA = Language.EN, Language.HI, Language.TA

# asked in this order; the remaining eligibility fields are used when volunteered
ELIGIBILITY_QUESTIONS = (
    SlotField.MONTHLY_INCOME,
    SlotField.LOAN_AMOUNT,
    SlotField.CREDIT_SCORE,
    SlotField.EXISTING_LOANS,
    SlotField.JOB_TYPE,
    SlotField.AGE,
    SlotField.LOAN_TENURE,
)

INTRO = {
    EN: "🎯 **Instant Loan Eligibility Check**\n\nI'll ask a few quick questions and predict your approval chances.",
    HI: "🎯 **तुरंत ऋण पात्रता जांच**\n\nकुछ छोटे सवाल पूछकर मैं आपकी स्वीकृति की संभावना बताऊंगा।",
    TA: "🎯 **உடனடி கடன் தகுதி சோதனை**\n\nசில சிறிய கேள்விகள் கேட்டு உங்கள் ஒப்புதல் வாய்ப்பைக் கணிக்கிறேன்.",
}

PROMPTS = {
    SlotField.MONTHLY_INCOME: {
        EN: "💰 What is your monthly take-home income in ₹? (e.g., 50000)",
        HI: "💰 आपकी मासिक इन-हैंड आय ₹ में कितनी है? (जैसे 50000)",
        TA: "💰 உங்கள் மாத கையில் கிடைக்கும் வருமானம் ₹ எவ்வளவு? (எ.கா, 50000)",
    },
    SlotField.LOAN_AMOUNT: {
        EN: "💳 How much loan amount do you need in ₹? (e.g., 500000 or 5 lakh)",
        HI: "💳 आपको ₹ में कितना लोन चाहिए? (जैसे 500000 या 5 लाख)",
        TA: "💳 உங்களுக்கு ₹ எவ்வளவு கடன் வேண்டும்? (எ.கா, 500000 அல்லது 5 lakh)",
    },
    SlotField.CREDIT_SCORE: {
        EN: "📊 What is your credit/CIBIL score? (300-900, e.g., 750)",
        HI: "📊 आपका क्रेडिट/CIBIL स्कोर क्या है? (300-900, जैसे 750)",
        TA: "📊 உங்கள் CIBIL/கிரெடிட் ஸ்கோர் என்ன? (300-900, எ.கா, 750)",
    },
    SlotField.EXISTING_LOANS: {
        EN: "📋 How many active loans or EMIs do you currently have? (e.g., 0, 1 or 2)",
        HI: "📋 अभी आपके कितने सक्रिय लोन/EMI चल रहे हैं? (जैसे 0, 1 या 2)",
        TA: "📋 இப்போது எத்தனை செயலில் உள்ள கடன்/EMI உள்ளன? (எ.கா, 0, 1 அல்லது 2)",
    },
    SlotField.JOB_TYPE: {
        EN: "💼 What is your job type? (Salaried / Self-employed / Business / Freelance)",
        HI: "💼 आपका रोजगार प्रकार क्या है? (Salaried / Self-employed / Business / Freelance)",
        TA: "💼 உங்கள் வேலை வகை என்ன? (Salaried / Self-employed / Business / Freelance)",
    },
    SlotField.AGE: {
        EN: "🎂 What is your age? (18-75)",
        HI: "🎂 आपकी उम्र क्या है? (18-75)",
        TA: "🎂 உங்கள் வயது என்ன? (18-75)",
    },
    SlotField.LOAN_TENURE: {
        EN: "📅 Preferred loan tenure? (in months or years, e.g., 36 months or 5 years)",
        HI: "📅 आप कितनी अवधि का लोन चाहते हैं? (महीनों या वर्षों में, जैसे 36 महीने या 5 साल)",
        TA: "📅 விரும்பும் கடன் காலம்? (மாதங்கள் அல்லது ஆண்டுகளில், எ.கா, 36 மாதங்கள் அல்லது 5 ஆண்டுகள்)",
    },
}

LABELS = {
    SlotField.MONTHLY_INCOME: {EN: "Income", HI: "आय", TA: "வருமானம்"},
    SlotField.LOAN_AMOUNT: {EN: "Loan amount", HI: "ऋण राशि", TA: "கடன் தொகை"},
    SlotField.CREDIT_SCORE: {EN: "Credit score", HI: "क्रेडिट स्कोर", TA: "கிரெடிட் ஸ்கோர்"},
    SlotField.EXISTING_LOANS: {EN: "Existing loans", HI: "मौजूदा लोन", TA: "தற்போதைய கடன்கள்"},
    SlotField.JOB_TYPE: {EN: "Employment", HI: "रोजगार", TA: "வேலை"},
    SlotField.AGE: {EN: "Age", HI: "उम्र", TA: "வயது"},
    SlotField.LOAN_TENURE: {EN: "Tenure", HI: "अवधि", TA: "காலம்"},
}

COMPLETION = {
    EN: "✅ Thanks! I have everything I need. Here is your assessment.",
    HI: "✅ धन्यवाद! मुझे सारी जानकारी मिल गई है। यह रहा आपका आकलन।",
    TA: "✅ நன்றி! தேவையான அனைத்து தகவல்களும் கிடைத்துவிட்டன. இதோ உங்கள் மதிப்பீடு.",
}

VERDICT_TEXT = {
    EN: {Verdict.LIKELY_ELIGIBLE: "LIKELY ELIGIBLE", Verdict.BORDERLINE: "BORDERLINE", Verdict.UNLIKELY: "UNLIKELY"},
    HI: {Verdict.LIKELY_ELIGIBLE: "संभवतः पात्र", Verdict.BORDERLINE: "सीमा रेखा पर", Verdict.UNLIKELY: "पात्रता की संभावना कम"},
    TA: {Verdict.LIKELY_ELIGIBLE: "தகுதி பெற வாய்ப்பு அதிகம்", Verdict.BORDERLINE: "எல்லைக்கோட்டில்", Verdict.UNLIKELY: "தகுதி வாய்ப்பு குறைவு"},
}

REPORT_LABELS = {
    EN: {
        "title": "✅ **Your Instant Eligibility Report**",
        "probability": "📊 **Approval Probability:**",
        "status": "🎯 **Status:**",
        "risk": "🔰 **Risk Level:**",
        "summary": "💰 **Loan Summary:**",
        "emi": "Monthly EMI",
        "dti": "Debt-to-income",
        "surplus": "Monthly surplus after EMI",
        "profile": "👤 **Your Profile:**",
        "risks": "⚠️ **Risk Factors:**",
        "next": "🛠️ **Top Actions:**",
        "month": "month",
        "months": "months",
        "rate": "at ~{rate:g}%",
        "closing": "Would you like a **detailed report** or to **continue chatting**?",
        "disclaimer": "_This is an indicative estimate, not a lender decision._",
    },
    HI: {
        "title": "✅ **आपकी तुरंत पात्रता रिपोर्ट**",
        "probability": "📊 **स्वीकृति संभावना:**",
        "status": "🎯 **स्थिति:**",
        "risk": "🔰 **जोखिम स्तर:**",
        "summary": "💰 **ऋण सारांश:**",
        "emi": "मासिक EMI",
        "dti": "ऋण-आय अनुपात",
        "surplus": "EMI के बाद मासिक बचत",
        "profile": "👤 **प्रोफ़ाइल:**",
        "risks": "⚠️ **जोखिम कारक:**",
        "next": "🛠️ **मुख्य सुझाव:**",
        "month": "महीना",
        "months": "महीने",
        "rate": "लगभग {rate:g}%",
        "closing": "क्या आप **विस्तृत रिपोर्ट** चाहते हैं या **चैट जारी** रखना चाहते हैं?",
        "disclaimer": "_यह केवल एक अनुमान है, बैंक का अंतिम निर्णय नहीं।_",
    },
    TA: {
        "title": "✅ **உங்கள் உடனடி தகுதி அறிக்கை**",
        "probability": "📊 **ஒப்புதல் வாய்ப்பு:**",
        "status": "🎯 **நிலை:**",
        "risk": "🔰 **அபாய நிலை:**",
        "summary": "💰 **கடன் சுருக்கம்:**",
        "emi": "மாத EMI",
        "dti": "கடன்-வருமான விகிதம்",
        "surplus": "EMI-க்குப் பிறகு மாத மீதம்",
        "profile": "👤 **உங்கள் விவரம்:**",
        "risks": "⚠️ **அபாய காரணிகள்:**",
        "next": "🛠️ **முக்கிய பரிந்துரைகள்:**",
        "month": "மாதம்",
        "months": "மாதங்கள்",
        "rate": "சுமார் {rate:g}%",
        "closing": "**விரிவான அறிக்கை** வேண்டுமா அல்லது **உரையாடலைத் தொடரலாமா**?",
        "disclaimer": "_இது ஒரு மதிப்பீடு மட்டுமே, கடன் வழங்குநரின் முடிவு அல்ல._",
    },
}


def render_eligibility_report(profile: EligibilityProfile, result: EligibilityResult, language) -> str:
    t = localized(REPORT_LABELS, language)
    verdict = localized(VERDICT_TEXT, language)[result.verdict]
    label = {f: localized(LABELS[f], language) for f in ELIGIBILITY_QUESTIONS}
    rate = t["rate"].format(rate=ELIGIBILITY_ANNUAL_RATE)

    lines = [
        t["title"],
        "",
        f"{t['probability']} {result.probability}%",
        f"{t['status']} {verdict}",
        f"{t['risk']} {result.risk_category.value}",
        "",
        t["summary"],
        f"• {label[SlotField.LOAN_AMOUNT]}: {format_inr(profile.loan_amount)}",
        f"• {t['emi']}: {format_inr(result.emi)} ({rate})",
        f"• {label[SlotField.LOAN_TENURE]}: {profile.loan_tenure} {t['months']}",
        f"• {t['dti']}: {result.dti}%",
        f"• {t['surplus']}: {format_inr(result.surplus)}",
        "",
        t["profile"],
        f"• {label[SlotField.MONTHLY_INCOME]}: {format_inr(profile.monthly_income)}/{t['month']}",
        f"• {label[SlotField.CREDIT_SCORE]}: {profile.credit_score}",
        f"• {label[SlotField.JOB_TYPE]}: {profile.job_type.value}",
        f"• {label[SlotField.EXISTING_LOANS]}: {profile.existing_loans}",
    ]
    if result.risk_factors:
        lines += ["", t["risks"]] + [f"• {factor}" for factor in result.risk_factors[:4]]
    if result.recommendations:
        lines += ["", t["next"]] + [
            f"{i}. {rec.action} (+{rec.impact})" for i, rec in enumerate(result.recommendations[:3], 1)
        ]
    lines += ["", t["closing"], "", t["disclaimer"]]
    return "\n".join(lines)


def finish_eligibility(slots: Dict[str, Any], language: Language) -> Tuple[str, EligibilityResult]:
    profile = build_eligibility_profile(slots)
    result = score_eligibility(profile)
    return render_eligibility_report(profile, result, language), result


ELIGIBILITY_FLOW = FlowSchema(
    name="eligibility",
    agent_type=AgentType.ELIGIBILITY,
    fields=ELIGIBILITY_QUESTIONS,
    active_key="inEligibilityFlow",
    started_key="eligStarted",
    intro=INTRO,
    prompts=PROMPTS,
    labels=LABELS,
    completion=COMPLETION,
    finish=finish_eligibility,
)
