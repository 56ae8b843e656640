"""The fixed advisor question set, one question per career domain."""

from dataclasses import dataclass

from app.features.advisor_feedback.domain.models import CareerDomain


@dataclass(frozen=True, slots=True)
class AdvisorQuestion:
    id: str
    domain: CareerDomain
    question: str
    placeholder: str
    follow_up_prompts: tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "domain": self.domain.value,
            "question": self.question,
            "placeholder": self.placeholder,
            "follow_up_prompts": list(self.follow_up_prompts),
        }


ADVISOR_QUESTIONS: dict[str, AdvisorQuestion] = {
    question.id: question
    for question in (
        AdvisorQuestion(
            id="strengths_observed",
            domain=CareerDomain.TECHNICAL,
            question=(
                "What do you see as this person's key strengths and natural talents? "
                "Please provide specific examples of when you've observed these strengths in action."
            ),
            placeholder=(
                "Think about their natural abilities, skills that come easily to them, "
                "and what they excel at..."
            ),
            follow_up_prompts=(
                "Can you describe a specific situation where you saw these strengths?",
                "What makes these strengths particularly notable?",
                "How do these strengths benefit their work or those around them?",
            ),
        ),
        AdvisorQuestion(
            id="value_reputation",
            domain=CareerDomain.SOCIAL,
            question=(
                "What do people (including yourself) typically seek this person out for? "
                "What problems do they solve or what expertise do they provide to others?"
            ),
            placeholder=(
                "Consider what they're known for, what others ask their help with, their reputation..."
            ),
            follow_up_prompts=(
                "What specific situations have you seen others come to them for help?",
                "What makes people trust them with certain challenges?",
                "How would you describe their professional reputation?",
            ),
        ),
        AdvisorQuestion(
            id="growth_potential",
            domain=CareerDomain.LEADERSHIP,
            question=(
                "Where do you see the greatest opportunities for this person's professional "
                "growth and development? What potential do you see in them?"
            ),
            placeholder="Think about areas they could develop, untapped potential, future opportunities...",
            follow_up_prompts=(
                "What skills or areas could they develop further?",
                "What opportunities would suit them well?",
                "What potential do you see that they might not recognise themselves?",
            ),
        ),
        AdvisorQuestion(
            id="working_style",
            domain=CareerDomain.ANALYTICAL,
            question=(
                "How would you describe this person's working style and what type of work "
                "environment or role would suit them best?"
            ),
            placeholder="Consider their approach to work, team dynamics, preferred environments...",
            follow_up_prompts=(
                "How do they work best - independently or in teams?",
                "What kind of environment brings out their best work?",
                "What role characteristics would suit their style?",
            ),
        ),
        AdvisorQuestion(
            id="career_direction",
            domain=CareerDomain.ENTREPRENEURIAL,
            question=(
                "Based on what you know about this person, what career directions or "
                "opportunities do you think would align well with their abilities and interests?"
            ),
            placeholder="Think about career paths, industries, or roles that would suit them...",
            follow_up_prompts=(
                "What career paths do you think would energise them?",
                "What industries or sectors might suit them well?",
                "What type of role would make the most of their abilities?",
            ),
        ),
    )
}
