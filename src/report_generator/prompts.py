"""Default prompt templates used when the YAML configuration does not override them."""

DEFAULT_PROMPT_TEMPLATE = """\
You are an expert data-report writer and business analyst. Your task is to produce a rigorous investigative report.
Topic: {topic}
Goal: {goal}
Target audience: {target_audience}
Region: {region}
Time range: {time_range}
Requested metrics: {metrics}
Requested chart types: {chart_types}
Data source mode: {data_type}
Input data: {raw_data}
Report language: {language}

{profile_directive}
Respond with JSON only. Clean any outlier values and provide a realistic analysis.
"""

DEFAULT_SYSTEM_TEMPLATE = (
    "Write the report in professional {language}. Use precise figures and make "
    "sure every chart's data can be plotted. Each chart `type` must be one of "
    "Bar, Line, Pie or Radar."
)

# Used in place of the input data when the caller supplied none.
EMPTY_DATA_DIRECTIVE = "None supplied; rely on digital field research (web search)."
