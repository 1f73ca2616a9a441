IMPACT_SYSTEM_INSTRUCTION = "You are a helpful, encouraging sustainability expert. Be precise but friendly."

IMPACT_ANALYSIS_PROMPT = """
<RoleAndGoal>
You are an expert Eco-Impact Analyzer for the GreenMirror habit tracker. Analyze the attached input (image, video, audio recording, or text description of an everyday activity) for its environmental impact. Your entire output must be a single JSON object that follows the response schema.
</RoleAndGoal>

<Steps>
1.  **Classify:** Put the activity into exactly one `mainCategory`: Waste (recycling/trash), Transport (commute/travel), Food (meals/diet), Energy (electronics/lights), or Lifestyle (anything else).
2.  **Waste:** Identify the individual items and whether each is Recyclable, Compostable, Landfill, Hazardous, Reusable, or Other.
3.  **Transport, Food, Energy:** Describe the activity and estimate its impact using standard emission factors.
4.  **Score:** Give `totalCarbonScore` as an integer from 0 (eco-friendly) to 100 (high carbon footprint).
5.  **Items:** For every contributing factor give a unique `id`, a `name`, its `category`, `carbonFootprint` in grams of CO2e (never negative), a short `impactDescription`, and a specific `suggestion`.
6.  **Boxes:** Only when the input is a single still image, add a `box` with normalized 0-1 coordinates (`ymin`, `xmin`, `ymax`, `xmax`) for each visible item. Never add boxes for video, audio or text.
7.  **Tips:** Finish with a few actionable `generalTips`.
</Steps>
"""

TEXT_INPUT_TEMPLATE = 'User Activity Description: "{text}"'

VISUALIZATION_PROMPT = """
Create a stunning 3D isometric diorama visualization representing this activity: "{summary}".
The image should abstractly represent the carbon footprint impact in a "digital collectible" style.
Carbon Impact Score: {score}/100 (Lower is better).

Visual Style: High-quality 3D render, isometric view, claymorphism, soft studio lighting, minimalist.

{scene}

The background should be a solid, soft color to match the mood. Make it look like a premium 3D icon.
"""

SCENE_LOW_IMPACT = "Show a floating island with vibrant lush greenery, trees, clear water, blooming flowers, birds."
SCENE_MODERATE_IMPACT = "Show a balance of clean technology, electric infrastructure, wind turbines, and some nature."
SCENE_HIGH_IMPACT = "Show a darker industrial platform with smoke, waste piles, red warning lights, but artistically rendered."


def scene_for_score(score):
    if score <= 30:
        return SCENE_LOW_IMPACT
    if score <= 69:
        return SCENE_MODERATE_IMPACT
    return SCENE_HIGH_IMPACT
