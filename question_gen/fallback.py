"""Built-in question bank used when the item generator is unavailable."""
from __future__ import annotations

from typing import Any, Dict, List

TECHNICAL_BANK: Dict[str, List[Dict[str, Any]]] = {
    "Core CS": [
        {
            "prompt": "Explain the difference between a process and a thread. When would you use one over the other?",
            "expected_answer": "Processes have separate memory, threads share memory. Processes give isolation, threads give lightweight concurrency.",
            "evaluation_focus": ["Memory isolation", "Practical use cases", "Performance considerations"],
        },
        {
            "prompt": "What is the difference between stack and heap memory? How does garbage collection work?",
            "expected_answer": "Stack holds local variables in LIFO order, heap holds dynamic allocations. GC reclaims unreachable heap memory.",
            "evaluation_focus": ["Memory allocation", "GC mechanism", "Clarity"],
        },
        {
            "prompt": "Explain how HTTP works. What happens when you type a URL into the browser?",
            "expected_answer": "DNS lookup, TCP and TLS handshake, HTTP request, server processing, HTTP response, rendering.",
            "evaluation_focus": ["End-to-end flow", "Technical accuracy", "Level of detail"],
        },
    ],
    "DSA": [
        {
            "prompt": "Compare the time complexity of common sorting algorithms. When would you use QuickSort over MergeSort?",
            "expected_answer": "QuickSort is O(n log n) on average and O(n^2) worst case, in place. MergeSort is O(n log n) always and stable.",
            "evaluation_focus": ["Complexity knowledge", "Trade-offs", "Practical application"],
        },
        {
            "prompt": "How would you detect a cycle in a linked list? Explain the algorithm and its complexity.",
            "expected_answer": "Floyd's tortoise and hare with two pointers at different speeds. O(n) time, O(1) space.",
            "evaluation_focus": ["Algorithm correctness", "Complexity analysis", "Clear explanation"],
        },
        {
            "prompt": "What is a hash table? How are collisions handled and what is the lookup complexity?",
            "expected_answer": "A key-value structure indexed by a hash function. Chaining or open addressing resolve collisions. O(1) average lookup.",
            "evaluation_focus": ["Hash table basics", "Collision resolution", "Complexity analysis"],
        },
    ],
    "System Design": [
        {
            "prompt": "How would you design a URL shortener? Discuss the storage schema and how it scales.",
            "expected_answer": "Short code generation, a mapping table, a cache in front, horizontal scaling with sharding.",
            "evaluation_focus": ["Architecture", "Scalability", "Data model"],
        },
        {
            "prompt": "Explain the CAP theorem and what it means for distributed systems.",
            "expected_answer": "Under a partition a system chooses between consistency and availability. Choice depends on the use case.",
            "evaluation_focus": ["CAP understanding", "Real-world examples", "Trade-off analysis"],
        },
    ],
    "Framework": [
        {
            "prompt": "Describe the lifecycle of a UI component in a framework you know. What are cleanup hooks used for?",
            "expected_answer": "Mount, update and unmount phases. Cleanup releases subscriptions and timers to avoid leaks.",
            "evaluation_focus": ["Lifecycle", "Resource cleanup", "Best practices"],
        },
        {
            "prompt": "What is middleware in a web framework? Walk through the request-response cycle.",
            "expected_answer": "Functions that see the request and response in order and may modify them or end the cycle.",
            "evaluation_focus": ["Middleware concept", "Request flow", "Practical examples"],
        },
    ],
    "Projects": [
        {
            "prompt": "Tell me about a challenging technical problem you solved in a recent project. What was your approach?",
            "expected_answer": "A specific problem, the approach taken, the technologies used and the outcome.",
            "evaluation_focus": ["Problem complexity", "Solution approach", "Communication"],
        },
        {
            "prompt": "How do you ensure code quality in your projects? Which testing strategies do you use?",
            "expected_answer": "Unit and integration tests, code review, linting, CI pipelines.",
            "evaluation_focus": ["Testing knowledge", "Quality practices", "Real-world application"],
        },
    ],
}

HR_BANK: Dict[str, List[Dict[str, Any]]] = {
    "Behavioral": [
        {
            "prompt": "Tell me about a time you worked under a tight deadline. How did you manage it?",
            "evaluation_focus": ["Time management", "Stress handling", "Prioritization"],
        },
        {
            "prompt": "Describe a situation where you had to learn a new technology quickly. What was your approach?",
            "evaluation_focus": ["Learning agility", "Adaptability", "Self-motivation"],
        },
    ],
    "Teamwork": [
        {
            "prompt": "Tell me about a disagreement with a team member. How did you resolve it?",
            "evaluation_focus": ["Conflict resolution", "Communication", "Collaboration"],
        },
        {
            "prompt": "Describe a successful team project you worked on. What was your role?",
            "evaluation_focus": ["Teamwork", "Ownership", "Contribution"],
        },
    ],
    "Leadership": [
        {
            "prompt": "Have you ever taken charge of a project? What challenges did you face?",
            "evaluation_focus": ["Leadership", "Decision making", "Responsibility"],
        },
    ],
    "Career Goals": [
        {
            "prompt": "Where do you see yourself in three to five years?",
            "evaluation_focus": ["Ambition", "Career planning", "Alignment with role"],
        },
    ],
}

CODING_BANK: List[Dict[str, Any]] = [
    {
        "title": "Two Sum",
        "prompt": (
            "Given an array of integers nums and an integer target, return the indices of the two numbers "
            "that add up to target. Each input has exactly one solution and an element may not be used twice."
        ),
        "category": "DSA",
        "test_cases": [
            {"input": "[2,7,11,15]\n9", "output": "[0,1]", "explanation": "nums[0] + nums[1] == 9"},
            {"input": "[3,2,4]\n6", "output": "[1,2]", "explanation": "nums[1] + nums[2] == 6"},
            {"input": "[3,3]\n6", "output": "[0,1]", "hidden": True},
            {"input": "[-1,-2,-3,-4,-5]\n-8", "output": "[2,4]", "hidden": True},
            {"input": "[0,4,3,0]\n0", "output": "[0,3]", "hidden": True},
        ],
    },
    {
        "title": "Valid Parentheses",
        "prompt": (
            "Given a string containing only the characters ()[]{}, determine whether every bracket is closed "
            "by the same type of bracket in the correct order. Print true or false."
        ),
        "category": "DSA",
        "test_cases": [
            {"input": "()[]{}", "output": "true", "explanation": "Each bracket closes in order"},
            {"input": "(]", "output": "false", "explanation": "Mismatched pair"},
            {"input": "([)]", "output": "false", "hidden": True},
            {"input": "{[]}", "output": "true", "hidden": True},
            {"input": "", "output": "true", "hidden": True},
        ],
    },
]

HR_DEFAULT_CATEGORY = "Behavioral"
TECHNICAL_DEFAULT_CATEGORY = "Core CS"


def fallback_item(kind: str, category: str, number: int, difficulty: str = "medium") -> Dict[str, Any]:
    """Return the ``number``-th (1-based) bank entry for ``category``, cycling."""

    if kind == "coding":
        entry = dict(CODING_BANK[(number - 1) % len(CODING_BANK)])
        entry.setdefault("language", "javascript")
    elif kind == "hr":
        bank = HR_BANK.get(category) or HR_BANK[HR_DEFAULT_CATEGORY]
        entry = dict(bank[(number - 1) % len(bank)])
        entry["category"] = category
    else:
        bank = TECHNICAL_BANK.get(category) or TECHNICAL_BANK[TECHNICAL_DEFAULT_CATEGORY]
        entry = dict(bank[(number - 1) % len(bank)])
        entry["category"] = category
    entry["difficulty"] = difficulty
    return entry


__all__ = ["TECHNICAL_BANK", "HR_BANK", "CODING_BANK", "fallback_item"]
