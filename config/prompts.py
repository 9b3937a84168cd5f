"""
Prompt templates and tool definitions for the learning agent.

This module contains:
- System prompt for the real-LLM chat path
- Ability assessment prompt (resume / questionnaire input)
- Improvement strategy prompt
- Function calling tool definitions

All prompts should be maintained here (not hardcoded in services/tools).
"""

import json
from typing import Any, Dict, List, Optional

from .settings import (
    DIMENSION_WEIGHTS,
    DIMENSION_SKILLS,
    DIMENSION_NAMES,
    SKILL_NAMES,
)

# ============================================================================
# SYSTEM PROMPT
# ============================================================================

SYSTEM_PROMPT = """你是一位专业的编程学习助手，帮助用户规划和推进个人的编程学习之旅。

你可以：
1. 查询用户的学习目标、学习路径、课程单元和整体学习进度
2. 解读用户的能力评估结果，指出优势与薄弱环节
3. 创建学习目标和学习路径
4. 给出下一步学习建议

工作原则：
- 需要数据时先调用工具获取，不要编造目标、路径或分数
- 回答使用中文，简洁、具体、可执行
- 工具调用失败时，向用户说明情况并给出可以尝试的下一步"""

# ============================================================================
# ABILITY ASSESSMENT PROMPT
# ============================================================================

ASSESSMENT_PROMPT = """你是一位经验丰富的技术面试官和职业发展顾问。请根据提供的{input_label}，对候选人进行全面的技术能力评估。

评估维度说明：
{dimension_guide}

评分标准：
- 0-20: 新手 (Novice) - 刚接触，需要大量指导
- 21-40: 初学者 (Beginner) - 有基础认知，能完成简单任务
- 41-60: 中级 (Intermediate) - 能独立工作，处理常见问题
- 61-80: 高级 (Advanced) - 熟练掌握，能解决复杂问题
- 81-100: 专家 (Expert) - 精通领域，能指导他人

重要说明：
1. 对于每个技能，请返回一个对象，包含：
   - score: 分数 (0-100)
   - confidence: 置信度 (0-1)，表示得出该分数的把握程度
   - is_inferred: 布尔值，如果是基于整体信息推理而非直接证据，设为 true
2. 有明确证据（具体项目经验、技能描述）时，置信度应在 0.8-1.0
3. 只能推理得出时，置信度应在 0.3-0.7，并设置 is_inferred 为 true
4. 不要给出没有依据的高分，宁可保守评估

report 部分要求：
- summary: 150-200字的综合评估总结
- strengths: 3-5个具体的优势领域
- improvements: 3-5个具体的待改进项
- recommendations: 5-8个可执行的发展建议

请根据以下内容进行评估：
{content}

请严格按照以下 JSON 格式返回评估结果，必须用 ```json 和 ``` 包围：

```json
{json_template}
```

重要：
1. 必须严格按照上述 JSON 格式返回，键名保持不变
2. 维度总分是其下所有技能的平均分
3. 总体评分是各维度加权平均分
4. metadata.confidence 表示整体评估置信度 (0-1)
5. report 部分用中文，简洁明了，具有建设性"""

# ============================================================================
# IMPROVEMENT STRATEGY PROMPT
# ============================================================================

IMPROVEMENT_STRATEGY_PROMPT = """基于以下能力评估和技能差距分析，为一位 {level} 级别（{overall_score}分）的开发者生成学习提升策略。

## 当前能力评估
- 总分：{overall_score}/100
- 评估置信度：{confidence_percent}%
- 整体策略：{overall_strategy}

## 各维度评分
{dimension_lines}

## 优先提升技能
{priority_lines}

## 优势和薄弱项
优势：{strengths}
待改进：{improvements}

请严格按照以下 JSON 格式返回，必须用 ```json 和 ``` 包围：

```json
{{
  "target_improvement": 15,
  "estimated_time_months": 3,
  "plan_type": "comprehensive",
  "strategy": {{
    "focus_areas": ["重点领域"],
    "learning_approach": "学习方法",
    "time_allocation": "时间分配建议"
  }},
  "short_term_goals": [
    {{
      "title": "目标标题",
      "description": "目标描述",
      "category": "programming",
      "priority": 5,
      "target_level": "intermediate",
      "estimated_time_weeks": 4,
      "required_skills": ["技能"],
      "outcomes": ["预期成果"],
      "path_structure": {{
        "title": "路径标题",
        "description": "路径描述",
        "nodes": [
          {{
            "title": "节点标题",
            "description": "节点描述",
            "type": "theory",
            "difficulty": 2,
            "estimated_hours": 8,
            "skills": ["技能"],
            "prerequisites": [],
            "order": 1
          }}
        ]
      }}
    }}
  ],
  "medium_term_goals": [],
  "timeline": [
    {{"date": "YYYY-MM-DD", "milestone": "里程碑名称", "description": "详细描述", "type": "goal"}}
  ],
  "priority_matrix": [
    {{"skill": "技能名称", "impact": 4, "difficulty": 3, "urgency": 5, "priority": 4}}
  ]
}}
```

要求：
1. short_term_goals 为 1-2 个 4-8 周的目标，medium_term_goals 为 1-2 个 8-16 周的目标
2. 学习内容难度必须与当前 {level} 水平匹配
3. 所有文字内容使用中文"""

# ============================================================================
# TOOL DEFINITIONS (Function Calling)
# ============================================================================

TOOL_DEFINITIONS = [
    {
        "name": "get_learning_goals",
        "description": "列出用户的学习目标，可按状态、类别和优先级筛选。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "status": {
                    "type": "STRING",
                    "description": "目标状态：active、paused、completed 或 cancelled"
                },
                "category": {
                    "type": "STRING",
                    "description": "目标类别，例如 programming"
                },
                "limit": {
                    "type": "INTEGER",
                    "description": "最多返回的目标数量"
                }
            }
        }
    },
    {
        "name": "get_learning_paths",
        "description": "列出用户的学习路径及其节点完成情况，可按目标或状态筛选。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "goal_id": {
                    "type": "STRING",
                    "description": "只返回属于该目标的路径"
                },
                "status": {
                    "type": "STRING",
                    "description": "路径状态：draft、active 或 completed"
                }
            }
        }
    },
    {
        "name": "get_course_units",
        "description": "列出课程单元，可按路径节点或单元类型筛选。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "node_id": {
                    "type": "STRING",
                    "description": "只返回关联到该路径节点的课程单元"
                },
                "type": {
                    "type": "STRING",
                    "description": "课程单元类型，例如 theory 或 practice"
                }
            }
        }
    },
    {
        "name": "get_learning_summary",
        "description": "生成学习摘要：整体进度、活跃目标与路径数量、已完成节点和建议。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "time_range": {
                    "type": "STRING",
                    "description": "统计范围：week、month 或 all"
                }
            }
        }
    },
    {
        "name": "get_learning_context",
        "description": "获取用户学习上下文概览：是否有能力档案、活跃目标、活跃路径、课程单元数量和当前重点。"
    },
    {
        "name": "track_learning_progress",
        "description": "统计学习路径的完成进度。不指定 path_id 时统计所有活跃路径。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "path_id": {
                    "type": "STRING",
                    "description": "要统计的学习路径 ID"
                },
                "time_range": {
                    "type": "STRING",
                    "description": "统计范围：week、month 或 all"
                }
            }
        }
    },
    {
        "name": "suggest_next_action",
        "description": "根据当前的评估、目标和路径情况给出下一步学习建议。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "goal_id": {
                    "type": "STRING",
                    "description": "针对某个目标给出建议（可选）"
                }
            }
        }
    },
    {
        "name": "analyze_user_ability",
        "description": "分析用户当前的能力评估结果，返回总分、优势维度、薄弱维度和建议。"
    },
    {
        "name": "create_learning_goal",
        "description": "创建一个新的学习目标。已有3个活跃目标时，新目标会以暂停状态创建。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "title": {
                    "type": "STRING",
                    "description": "目标标题"
                },
                "description": {
                    "type": "STRING",
                    "description": "目标描述"
                },
                "category": {
                    "type": "STRING",
                    "description": "目标类别，例如 programming、algorithm、project"
                },
                "priority": {
                    "type": "INTEGER",
                    "description": "优先级 1-5"
                },
                "target_level": {
                    "type": "STRING",
                    "description": "目标水平：beginner、intermediate、advanced 或 expert"
                },
                "estimated_time_weeks": {
                    "type": "INTEGER",
                    "description": "预计完成周数"
                }
            },
            "required": ["title"]
        }
    },
    {
        "name": "create_learning_path",
        "description": "为某个学习目标创建学习路径（草稿状态）。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "goal_id": {
                    "type": "STRING",
                    "description": "路径所属的目标 ID"
                },
                "title": {
                    "type": "STRING",
                    "description": "路径标题"
                },
                "description": {
                    "type": "STRING",
                    "description": "路径描述"
                }
            },
            "required": ["goal_id", "title"]
        }
    },
    {
        "name": "generate_path_nodes",
        "description": "为学习目标生成基础的学习路径节点（基础准备、核心学习、实践应用）。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "goal_id": {
                    "type": "STRING",
                    "description": "学习目标 ID"
                }
            },
            "required": ["goal_id"]
        }
    },
    {
        "name": "create_course_unit",
        "description": "为学习路径节点创建课程单元。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "node_id": {
                    "type": "STRING",
                    "description": "课程单元关联的路径节点 ID"
                },
                "title": {
                    "type": "STRING",
                    "description": "课程单元标题"
                },
                "type": {
                    "type": "STRING",
                    "description": "课程单元类型：theory、example、exercise 或 project"
                }
            },
            "required": ["node_id", "title"]
        }
    },
    {
        "name": "handle_learning_difficulty",
        "description": "处理用户遇到的学习困难，提供解决方案。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "node_id": {
                    "type": "STRING",
                    "description": "当前学习节点 ID"
                },
                "difficulty": {
                    "type": "STRING",
                    "description": "遇到的困难描述"
                },
                "preferred_solution": {
                    "type": "STRING",
                    "description": "偏好的解决方式：explanation、example、practice 或 alternative"
                }
            },
            "required": ["difficulty"]
        }
    },
    {
        "name": "adjust_learning_pace",
        "description": "根据用户反馈调整学习节奏和难度。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "path_id": {
                    "type": "STRING",
                    "description": "学习路径 ID"
                },
                "feedback": {
                    "type": "STRING",
                    "description": "用户反馈"
                },
                "adjustment": {
                    "type": "STRING",
                    "description": "调整方向：faster、slower、easier 或 harder"
                }
            }
        }
    },
    {
        "name": "recommend_study_schedule",
        "description": "根据用户每周可用时间推荐学习时间表。",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "available_hours_per_week": {
                    "type": "NUMBER",
                    "description": "每周可用学习小时数"
                },
                "preferred_study_times": {
                    "type": "ARRAY",
                    "items": {"type": "STRING"},
                    "description": "偏好的学习时间段，例如 morning、evening"
                },
                "goal_id": {
                    "type": "STRING",
                    "description": "学习目标 ID"
                }
            }
        }
    },
]

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def format_prompt(template: str, **kwargs) -> str:
    """
    Format a prompt template with provided variables.

    Args:
        template: Prompt template string with {placeholders}
        **kwargs: Variables to substitute into the template

    Returns:
        Formatted prompt string
    """
    try:
        return template.format(**kwargs)
    except KeyError as e:
        raise ValueError(f"Missing required prompt variable: {e}")


def get_tool_by_name(tool_name: str) -> Dict:
    """
    Retrieve tool definition by name.

    Args:
        tool_name: Name of the tool to retrieve

    Returns:
        Tool definition dictionary

    Raises:
        ValueError: If tool name not found
    """
    tool = next((t for t in TOOL_DEFINITIONS if t["name"] == tool_name), None)
    if not tool:
        available = [t["name"] for t in TOOL_DEFINITIONS]
        raise ValueError(f"Tool '{tool_name}' not found. Available: {available}")
    return tool


def get_tool_definitions(names: Optional[List[str]] = None) -> List[Dict]:
    """Return the definitions for the given tool names (all tools when None)."""
    if names is None:
        return list(TOOL_DEFINITIONS)
    return [get_tool_by_name(name) for name in names]


def _assessment_json_template(input_type: str) -> str:
    skill_stub = {"score": 0, "confidence": 0.0, "is_inferred": False}
    template: Dict[str, Any] = {
        "overall_score": 0,
        "dimensions": {
            dimension: {
                "score": 0,
                "weight": DIMENSION_WEIGHTS[dimension],
                "skills": {skill: dict(skill_stub) for skill in skills},
            }
            for dimension, skills in DIMENSION_SKILLS.items()
        },
        "metadata": {
            "assessment_date": "ISO-8601 时间",
            "assessment_method": input_type,
            "confidence": 0.0,
        },
        "report": {
            "summary": "综合评估总结",
            "strengths": ["具体优势领域"],
            "improvements": ["具体待改进项"],
            "recommendations": ["可执行的发展建议"],
        },
    }
    return json.dumps(template, ensure_ascii=False, indent=2)


def build_assessment_prompt(content: str, input_type: str = "resume") -> str:
    """
    Build the ability assessment prompt for a resume or questionnaire.

    Args:
        content: Resume text or JSON-dumped questionnaire answers
        input_type: "resume" or "questionnaire"

    Returns:
        Prompt text asking for a fenced JSON assessment
    """
    guide_lines = []
    for index, (dimension, skills) in enumerate(DIMENSION_SKILLS.items(), start=1):
        guide_lines.append(
            f"{index}. {DIMENSION_NAMES[dimension]} ({dimension}) - 权重 {DIMENSION_WEIGHTS[dimension]}"
        )
        guide_lines.extend(f"   - {skill}: {SKILL_NAMES.get(skill, skill)}" for skill in skills)

    return format_prompt(
        ASSESSMENT_PROMPT,
        input_label="简历" if input_type == "resume" else "问卷回答",
        dimension_guide="\n".join(guide_lines),
        content=content,
        json_template=_assessment_json_template(input_type),
    )
