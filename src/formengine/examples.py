"""
Example form builder.

Builds a small three-branch registration form: a personal page whose
answers route the respondent to an adult or a minor page, then a final
page. It exercises every structural feature of the model: a nested
panel, single and multi conditionals, navigation rules, a page-level
visibility condition and a page that forbids going back.

All ids are fixed so tests and demos can address nodes directly.
"""
from formengine.conditions import (
    Condition,
    ConditionalAction,
    ConditionOperator,
    LogicType,
    MultiConditional,
    SingleConditional,
)
from formengine.model import (
    ContainerField,
    Field,
    FieldType,
    FormPage,
    FormSchema,
    PageNavigationRule,
)


def build_example_form(title: str = "Example Registration", adult_age: int = 18) -> FormSchema:
    # Page 1: who are you
    country = Field(
        id="f-country",
        name="country",
        type=FieldType.SELECT,
        label="Country of residence",
        properties={"options": ["US", "UK", "FR"]},
    )
    age = Field(id="f-age", name="age", type=FieldType.NUMBER, label="Age")

    # Only US adults are asked for a state
    us_state = Field(
        id="f-us-state",
        name="us_state",
        type=FieldType.TEXT,
        label="State",
        conditional=MultiConditional(
            action=ConditionalAction.SHOW,
            logic_type=LogicType.AND,
            conditions=(
                Condition("country", ConditionOperator.EQUALS, "US"),
                Condition("age", ConditionOperator.GREATER_EQUAL, str(adult_age)),
            ),
        ),
    )
    personal = FormPage(
        id="page-personal",
        title="About you",
        fields=[country, age, us_state],
        navigation_rules=[
            PageNavigationRule(
                id="rule-minor",
                field_name="age",
                operator=ConditionOperator.LESS_THAN,
                value=str(adult_age),
                target_page_id="page-minor",
            ),
            PageNavigationRule(
                id="rule-adult",
                field_name="age",
                operator=ConditionOperator.GREATER_EQUAL,
                value=str(adult_age),
                target_page_id="page-adult",
            ),
        ],
    )

    # Page 2: adults, with an employment panel
    employed = Field(id="f-employed", name="employed", type=FieldType.BOOLEAN, label="Are you employed?")
    employment = ContainerField(
        id="f-employment",
        name="employment",
        type=FieldType.PANEL,
        label="Employment",
        conditional=SingleConditional(
            action=ConditionalAction.SHOW,
            when=Condition("employed", ConditionOperator.EQUALS, "true"),
        ),
        fields=[
            Field(id="f-employer", name="employer", type=FieldType.TEXT, label="Employer"),
            Field(id="f-start-date", name="start_date", type=FieldType.DATE, label="Start date"),
        ],
    )
    adult = FormPage(id="page-adult", title="Adults", fields=[employed, employment])

    # Page 3: minors, hidden once an adult age is known
    guardian = Field(id="f-guardian", name="guardian", type=FieldType.TEXT, label="Guardian name")
    minor = FormPage(
        id="page-minor",
        title="Minors",
        fields=[guardian],
        visibility_condition=SingleConditional(
            action=ConditionalAction.HIDE,
            when=Condition("age", ConditionOperator.GREATER_EQUAL, str(adult_age)),
        ),
    )

    # Page 4: wrap-up, no way back
    final = FormPage(
        id="page-final",
        title="Done",
        allow_previous=False,
        fields=[
            Field(id="f-comments", name="comments", type=FieldType.TEXTAREA, label="Comments"),
            Field(id="f-thanks", name="thanks", type=FieldType.ENDING, label="Thank you"),
        ],
    )

    return FormSchema(
        version="1.0",
        id="form-example",
        metadata={"title": title, "description": "Sample form with branching pages"},
        settings={"showProgressBar": True},
        pages=[personal, adult, minor, final],
    )
