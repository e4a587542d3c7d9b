"""
游戏常量模块
定义对战规则中使用的数值常量

规则常量固定不变，不通过环境变量配置。
"""

MAX_HEALTH = 100          # 初始体力
BASE_DAMAGE = 10          # 基础伤害
EMPOWERED_DAMAGE = 20     # 连胜强化伤害
STREAK_THRESHOLD = 3      # 触发强化所需连胜数

PLAYER_SLOTS = (1, 2)     # 对局座位号
