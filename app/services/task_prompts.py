"""
Language packs for AI task generation.

Each pack holds the system prompt, the labels used when describing the user
to the model, the prompt body template and the template pool used when the
model is unavailable. Packs are keyed by ISO language code.
"""

CATEGORIES = [
    "Mindfulness", "Physical", "Mental", "Social", "Digital",
    "Productivity", "Health", "Learning", "Creative", "Spiritual",
]

TR = {
    "system_prompt": (
        "Sen NoFap uygulaması için kişiselleştirilmiş görevler oluşturan bir AI asistanısın. "
        "Kullanıcının verilerine göre etkili, motivasyonel ve gerçekçi görevler oluştur."
    ),
    "no_repeat": "Her seferinde farklı ve yaratıcı görevler oluştur. Tekrar etme!",
    "categories": {
        "Mindfulness": "Zihinsel farkındalık ve meditasyon",
        "Physical": "Fiziksel aktivite ve egzersiz",
        "Mental": "Zihinsel güçlendirme ve öz-disiplin",
        "Social": "Sosyal bağlantı ve ilişkiler",
        "Digital": "Dijital detoks ve teknoloji yönetimi",
        "Productivity": "Verimlilik ve zaman yönetimi",
        "Health": "Sağlık ve beslenme",
        "Learning": "Öğrenme ve kişisel gelişim",
        "Creative": "Yaratıcılık ve sanat",
        "Spiritual": "Manevi gelişim ve iç huzur",
    },
    "labels": {
        "profile": "Kullanıcı Profili",
        "id": "ID",
        "name": "İsim",
        "unknown": "Bilinmiyor",
        "not_specified": "Belirtilmemiş",
        "streak": "Streak",
        "days": "gün",
        "plan": "Plan",
        "language": "Dil",
        "age": "Yaş",
        "motivation": "Motivasyon Seviyesi",
        "stress": "Stres Seviyesi",
        "social_support": "Sosyal Destek",
        "medium": "orta",
        "goals": "Hedefler",
        "preferred": "Tercih Edilen Kategoriler",
        "avoided": "Kaçınılan Kategoriler",
        "success_rate": "Görev Başarı Oranı",
        "avg_duration": "Ortalama Görev Süresi",
        "minutes": "dakika",
        "last_slip": "Son Slip Bilgisi ({days} gün önce)",
        "reason": "Sebep",
        "triggers": "Tetikleyiciler",
        "mood": "Ruh Hali",
        "time": "Zaman",
        "location": "Lokasyon",
        "intensity": "Yoğunluk",
        "thoughts": "Düşünceler",
        "emotions": "Duygular",
        "slip_stress": "Stres Seviyesi",
        "energy": "Enerji Seviyesi",
        "sleep": "Uyku Kalitesi",
        "patterns": "Son Slip Kalıpları",
        "common_triggers": "Yaygın Tetikleyiciler",
        "common_times": "Yaygın Zamanlar",
        "recent_tasks": "Son Görevler",
        "completed_tasks": "Son Başarılı Görevler",
        "failed_tasks": "Son Başarısız Görevler",
        "situation": "Mevcut Durum",
        "time_of_day": "Zaman Dilimi",
        "weekday": "Gün",
        "season": "Mevsim",
    },
    "times_of_day": {"night": "gece", "morning": "sabah", "afternoon": "öğleden sonra", "evening": "akşam"},
    "seasons": {"spring": "ilkbahar", "summer": "yaz", "autumn": "sonbahar", "winter": "kış"},
    "weekdays": ["Pazartesi", "Salı", "Çarşamba", "Perşembe", "Cuma", "Cumartesi", "Pazar"],
    "regenerate_block": """YENIDEN OLUŞTURMA MODU:
Eski Görev:
- Kategori: {category}
- Başlık: {title}
- Açıklama: {description}
- Tamamlanma Oranı: {completion_rate}%

ÖNEMLI: Bu görevden TAMAMEN FARKLI bir görev oluştur!
- Farklı kategori tercih et (mümkünse)
- Farklı aktivite türü seç
- Farklı zorluk seviyesi dene
- Tamamen yeni bir başlık kullan
- Önceki görevle hiçbir benzerlik olmasın

""",
    "header": """Görev Türü: {task_type}
İstenen Görev Sayısı: {count}

Mevcut Kategoriler: {categories}

""",
    "body": """ÖNEMLI: Her seferinde FARKLI ve ÇEŞİTLİ görevler oluştur. Aynı görevleri tekrarlama!

Lütfen yukarıdaki kullanıcı verilerine göre {count} adet TAMAMEN FARKLI ve kişiselleştirilmiş görev oluştur.

GÖREV ÇEŞİTLİLİĞİ KURALLARI:
- Her görev farklı bir kategoriden olmalı
- Aynı başlıkları kullanma
- Yaratıcı ve özgün görevler oluştur
- Kullanıcının durumuna göre sürpriz aktiviteler ekle

Her görev şunları içermeli:
1. Kullanıcının streak durumuna uygun zorluk seviyesi
2. Slip tetikleyicilerini ele alan içerik (varsa)
3. Kullanıcının tercihlerine uygun kategori seçimi
4. Motivasyonel ve kişiselleştirilmiş açıklama
5. Gerçekçi süre tahmini
6. Pratik ipuçları

Zorluk Seviyeleri:
- easy: 5-15 dakika, basit görevler
- medium: 15-45 dakika, orta düzey odaklanma
- hard: 45+ dakika, yüksek disiplin gerektiren

YARATICI GÖREV ÖRNEKLERİ:
- "Gün batımında 15 dakikalık fotoğraf çekimi"
- "Yabancı biriyle 5 dakikalık sohbet"
- "Evdeki bir eşyayı yeniden düzenle"
- "Sevdiğin bir şarkıyı dans ederek dinle"
- "Bugün öğrendiğin bir şeyi birine anlat"
- "10 dakikalık soğuk duş meditasyonu"
- "Çocukluk anılarını 15 dakika yaz"

JSON formatında yanıt ver:
{{
  "tasks": [
    {{
      "title": "Özgün ve yaratıcı görev başlığı",
      "description": "Detaylı açıklama ve kişiselleştirilmiş motivasyon",
      "category": "Kategori adı",
      "difficulty": "easy/medium/hard",
      "estimatedDuration": 30,
      "aiConfidence": 85,
      "motivationalMessage": "Kişiselleştirilmiş motivasyon mesajı",
      "tips": ["İpucu 1", "İpucu 2"],
      "expectedBenefits": ["Fayda 1", "Fayda 2"],
      "tags": ["etiket1", "etiket2"]
    }}
  ]
}}

TEKRAR: Her seferinde FARKLI görevler oluştur! Aynı görevleri tekrarlama!""",
    "personal_note": "{name}bu görev senin için özel olarak seçildi!",
    "motivational_messages": [
        "{name}, küçük adımlar büyük değişimler yaratır!",
        "Sen bunu başarabilirsin {buddy}!",
        "Her gün biraz daha güçleniyorsun!",
        "Bu görev seni bir adım daha ileriye taşıyacak!",
        "Kendine olan güvenin artıyor, devam et!",
        "Bugün kendine yatırım yapmanın zamanı!",
        "Sen gerçek bir savaşçısın, bunu kanıtla!",
    ],
    "friend": "Arkadaş",
    "buddy": "dostum",
    "tips": {
        "Mindfulness": ["Sessiz bir ortam seç", "Nefesine odaklan", "Düşünceleri yargılamadan gözlemle"],
        "Physical": ["Yavaş başla", "Vücudunu dinle", "Düzenli ol"],
        "Mental": ["Dürüst ol", "Küçük hedefler koy", "Kendini takdir et"],
        "Social": ["Samimi ol", "Aktif dinle", "Empati göster"],
        "Digital": ["Alternatif aktivite planla", "Bildirimleri kapat", "Zamanı takip et"],
        "Health": ["Küçük değişiklikler yap", "Tutarlı ol", "Kendini zorla"],
        "Learning": ["Notlar al", "Pratik yap", "Meraklı ol"],
        "Creative": ["Mükemmeliyetçi olma", "Eğlen", "Deneme yanılma yap"],
        "Productivity": ["Öncelik belirle", "Dikkat dağıtıcıları kaldır", "Mola ver"],
    },
    "default_tips": ["Sabırlı ol", "Tutarlı ol", "Kendine güven"],
    "benefits": {
        "Mindfulness": ["Stres azalması", "Mental netlik", "Duygusal denge"],
        "Physical": ["Enerji artışı", "Daha iyi uyku", "Güçlü vücut"],
        "Mental": ["Öz güven artışı", "Mental dayanıklılık", "Hedef odaklılık"],
        "Social": ["Güçlü ilişkiler", "Sosyal destek", "Mutluluk artışı"],
        "Digital": ["Daha fazla zaman", "Gerçek bağlantılar", "Mental huzur"],
        "Health": ["Daha iyi sağlık", "Enerji artışı", "Yaşam kalitesi"],
        "Learning": ["Yeni beceriler", "Mental stimülasyon", "Kişisel gelişim"],
        "Creative": ["Yaratıcılık artışı", "Stres azalması", "Kendini ifade"],
        "Productivity": ["Daha fazla başarı", "Zaman yönetimi", "Hedeflere ulaşma"],
    },
    "default_benefits": ["Kişisel gelişim", "Motivasyon artışı", "Pozitif momentum"],
    "templates": [
        ("5 Dakikalık Nefes Egzersizi", "Derin nefes alarak zihnini sakinleştir. Bu egzersiz stres seviyeni düşürmeye yardımcı olacak.", "Mindfulness", "easy"),
        ("Şükür Meditasyonu", "Bugün minnettar olduğun 3 şeyi düşün ve bu pozitif duyguları hisset.", "Mindfulness", "easy"),
        ("Farkındalık Yürüyüşü", "10 dakika yavaş yürüyüş yap, çevrene ve hislerine odaklan.", "Mindfulness", "easy"),
        ("15 Dakikalık Yürüyüş", "Dışarı çık ve temiz hava al. Fiziksel aktivite ruh halini iyileştirecek.", "Physical", "easy"),
        ("Basit Esneme Egzersizleri", "10 dakika boyunca vücudunu esnet. Boyun, omuz ve sırt kaslarına odaklan.", "Physical", "easy"),
        ("20 Şınav Challenge", "Günde 20 şınav yap. Başlangıç için mükemmel bir hedef.", "Physical", "medium"),
        ("Günlük Hedef Belirleme", "Yarın için 3 küçük, ulaşılabilir hedef belirle ve bunları yaz.", "Mental", "easy"),
        ("Pozitif Afirmasyon", "Aynada kendine bakarak 5 pozitif cümle söyle.", "Mental", "easy"),
        ("Günlük Journaling", "15 dakika boyunca düşüncelerini ve duygularını yaz.", "Mental", "medium"),
        ("Aile ile Kaliteli Zaman", "Ailenle en az 30 dakika telefonsuz kaliteli zaman geçir.", "Social", "easy"),
        ("Arkadaşa Mesaj At", "Uzun zamandır konuşmadığın bir arkadaşına mesaj at.", "Social", "easy"),
        ("1 Saatlik Telefon Detox", "Telefonunu 1 saat kapalı tut ve bu süreyi başka aktivitelerle geçir.", "Digital", "easy"),
        ("Sosyal Medya Sınırlaması", "Bugün sosyal medyada maksimum 30 dakika geçir.", "Digital", "medium"),
        ("Su İçme Takibi", "Bugün en az 8 bardak su iç ve miktarı takip et.", "Health", "easy"),
        ("Sağlıklı Atıştırmalık", "Meyve, kuruyemiş gibi sağlıklı atıştırmalıklar tercih et.", "Health", "easy"),
        ("15 Dakikalık Okuma", "Gelişim odaklı bir kitaptan 15 dakika oku ve notlar al.", "Learning", "easy"),
        ("Yeni Kelime Öğren", "Bugün 5 yeni kelime öğren ve cümle içinde kullan.", "Learning", "easy"),
        ("Yaratıcı Yazma", "10 dakika boyunca özgürce yaz. Konu sınırı yok, sadece yaz.", "Creative", "easy"),
        ("Basit Çizim", "Çevrende gördüğün bir şeyi çiz. Mükemmel olması gerekmiyor.", "Creative", "easy"),
        ("Günlük To-Do Listesi", "Yarın için basit bir yapılacaklar listesi hazırla.", "Productivity", "easy"),
        ("Çalışma Alanı Düzenleme", "Masanı ve çalışma alanını düzenle, gereksiz eşyaları kaldır.", "Productivity", "easy"),
    ],
}

EN = {
    "system_prompt": (
        "You are an AI assistant that creates personalized tasks for a NoFap application. "
        "Create effective, motivational, and realistic tasks based on user data."
    ),
    "no_repeat": "Create different and creative tasks every time. Do not repeat yourself!",
    "categories": {
        "Mindfulness": "Mental awareness and meditation",
        "Physical": "Physical activity and exercise",
        "Mental": "Mental strengthening and self-discipline",
        "Social": "Social connection and relationships",
        "Digital": "Digital detox and technology management",
        "Productivity": "Productivity and time management",
        "Health": "Health and nutrition",
        "Learning": "Learning and personal development",
        "Creative": "Creativity and arts",
        "Spiritual": "Spiritual development and inner peace",
    },
    "labels": {
        "profile": "User Profile",
        "id": "ID",
        "name": "Name",
        "unknown": "Unknown",
        "not_specified": "Not specified",
        "streak": "Streak",
        "days": "days",
        "plan": "Plan",
        "language": "Language",
        "age": "Age",
        "motivation": "Motivation Level",
        "stress": "Stress Level",
        "social_support": "Social Support",
        "medium": "medium",
        "goals": "Goals",
        "preferred": "Preferred Categories",
        "avoided": "Avoided Categories",
        "success_rate": "Task Success Rate",
        "avg_duration": "Average Task Duration",
        "minutes": "minutes",
        "last_slip": "Last Slip ({days} days ago)",
        "reason": "Reason",
        "triggers": "Triggers",
        "mood": "Mood",
        "time": "Time",
        "location": "Location",
        "intensity": "Intensity",
        "thoughts": "Thoughts",
        "emotions": "Emotions",
        "slip_stress": "Stress Level",
        "energy": "Energy Level",
        "sleep": "Sleep Quality",
        "patterns": "Recent Slip Patterns",
        "common_triggers": "Common Triggers",
        "common_times": "Common Times",
        "recent_tasks": "Recent Tasks",
        "completed_tasks": "Recently Completed Tasks",
        "failed_tasks": "Recently Failed Tasks",
        "situation": "Current Situation",
        "time_of_day": "Time of Day",
        "weekday": "Day",
        "season": "Season",
    },
    "times_of_day": {"night": "night", "morning": "morning", "afternoon": "afternoon", "evening": "evening"},
    "seasons": {"spring": "spring", "summer": "summer", "autumn": "autumn", "winter": "winter"},
    "weekdays": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"],
    "regenerate_block": """REGENERATION MODE:
Previous Task:
- Category: {category}
- Title: {title}
- Description: {description}
- Completion Rate: {completion_rate}%

IMPORTANT: Create a task that is COMPLETELY DIFFERENT from this one!
- Prefer a different category (if possible)
- Choose a different kind of activity
- Try a different difficulty level
- Use a brand new title
- Keep no similarity with the previous task

""",
    "header": """Task Type: {task_type}
Requested Task Count: {count}

Available Categories: {categories}

""",
    "body": """IMPORTANT: Create DIFFERENT and VARIED tasks every time. Do not repeat tasks!

Based on the user data above, create {count} COMPLETELY DIFFERENT, personalized tasks.

TASK VARIETY RULES:
- Each task should come from a different category
- Do not reuse titles
- Create creative and original tasks
- Add surprising activities that fit the user's situation

Each task must include:
1. A difficulty suited to the user's streak
2. Content addressing slip triggers (if any)
3. A category matching the user's preferences
4. A motivational, personalized description
5. A realistic duration estimate
6. Practical tips

Difficulty Levels:
- easy: 5-15 minutes, simple tasks
- medium: 15-45 minutes, moderate focus
- hard: 45+ minutes, requires high discipline

CREATIVE TASK EXAMPLES:
- "15-minute photo walk at sunset"
- "A 5-minute conversation with a stranger"
- "Rearrange one thing in your home"
- "Dance to a song you love"
- "Teach someone something you learned today"
- "10-minute cold shower meditation"
- "Write about childhood memories for 15 minutes"

Respond in JSON format:
{{
  "tasks": [
    {{
      "title": "Original, creative task title",
      "description": "Detailed description with personalized motivation",
      "category": "Category name",
      "difficulty": "easy/medium/hard",
      "estimatedDuration": 30,
      "aiConfidence": 85,
      "motivationalMessage": "Personalized motivational message",
      "tips": ["Tip 1", "Tip 2"],
      "expectedBenefits": ["Benefit 1", "Benefit 2"],
      "tags": ["tag1", "tag2"]
    }}
  ]
}}

AGAIN: Create DIFFERENT tasks every time! Do not repeat tasks!""",
    "personal_note": "{name}this task was picked especially for you!",
    "motivational_messages": [
        "{name}, small steps create big changes!",
        "You can do this, {buddy}!",
        "You are getting stronger every day!",
        "This task will carry you one step further!",
        "Your self-confidence is growing, keep going!",
        "Today is the day to invest in yourself!",
        "You are a true warrior, prove it!",
    ],
    "friend": "Friend",
    "buddy": "buddy",
    "tips": {
        "Mindfulness": ["Pick a quiet place", "Focus on your breath", "Observe thoughts without judging"],
        "Physical": ["Start slowly", "Listen to your body", "Be consistent"],
        "Mental": ["Be honest", "Set small goals", "Appreciate yourself"],
        "Social": ["Be sincere", "Listen actively", "Show empathy"],
        "Digital": ["Plan an alternative activity", "Turn off notifications", "Track your time"],
        "Health": ["Make small changes", "Be consistent", "Push yourself"],
        "Learning": ["Take notes", "Practice", "Stay curious"],
        "Creative": ["Don't be a perfectionist", "Have fun", "Experiment"],
        "Productivity": ["Set priorities", "Remove distractions", "Take breaks"],
    },
    "default_tips": ["Be patient", "Be consistent", "Trust yourself"],
    "benefits": {
        "Mindfulness": ["Lower stress", "Mental clarity", "Emotional balance"],
        "Physical": ["More energy", "Better sleep", "Stronger body"],
        "Mental": ["More self-confidence", "Mental resilience", "Goal focus"],
        "Social": ["Stronger relationships", "Social support", "More happiness"],
        "Digital": ["More free time", "Real connections", "Peace of mind"],
        "Health": ["Better health", "More energy", "Quality of life"],
        "Learning": ["New skills", "Mental stimulation", "Personal growth"],
        "Creative": ["More creativity", "Lower stress", "Self-expression"],
        "Productivity": ["More achievements", "Time management", "Reaching goals"],
    },
    "default_benefits": ["Personal growth", "More motivation", "Positive momentum"],
    "templates": [
        ("5-Minute Breathing Exercise", "Calm your mind with deep breaths. This exercise will help lower your stress level.", "Mindfulness", "easy"),
        ("Gratitude Meditation", "Think of 3 things you are grateful for today and feel those positive emotions.", "Mindfulness", "easy"),
        ("Mindful Walk", "Walk slowly for 10 minutes and focus on your surroundings and feelings.", "Mindfulness", "easy"),
        ("15-Minute Walk", "Go outside and get some fresh air. Physical activity will lift your mood.", "Physical", "easy"),
        ("Simple Stretching", "Stretch your body for 10 minutes. Focus on your neck, shoulders and back.", "Physical", "easy"),
        ("20 Push-Up Challenge", "Do 20 push-ups today. A perfect goal to start with.", "Physical", "medium"),
        ("Daily Goal Setting", "Set 3 small, achievable goals for tomorrow and write them down.", "Mental", "easy"),
        ("Positive Affirmations", "Look in the mirror and say 5 positive sentences to yourself.", "Mental", "easy"),
        ("Daily Journaling", "Write down your thoughts and feelings for 15 minutes.", "Mental", "medium"),
        ("Quality Family Time", "Spend at least 30 phone-free minutes with your family.", "Social", "easy"),
        ("Message a Friend", "Send a message to a friend you haven't talked to in a while.", "Social", "easy"),
        ("1-Hour Phone Detox", "Keep your phone off for an hour and spend that time on other activities.", "Digital", "easy"),
        ("Social Media Limit", "Spend at most 30 minutes on social media today.", "Digital", "medium"),
        ("Water Tracking", "Drink at least 8 glasses of water today and keep track.", "Health", "easy"),
        ("Healthy Snack", "Choose healthy snacks such as fruit or nuts.", "Health", "easy"),
        ("15-Minute Reading", "Read a personal-growth book for 15 minutes and take notes.", "Learning", "easy"),
        ("Learn New Words", "Learn 5 new words today and use them in sentences.", "Learning", "easy"),
        ("Free Writing", "Write freely for 10 minutes. No topic limits, just write.", "Creative", "easy"),
        ("Simple Sketch", "Draw something you see around you. It doesn't have to be perfect.", "Creative", "easy"),
        ("Daily To-Do List", "Prepare a simple to-do list for tomorrow.", "Productivity", "easy"),
        ("Tidy Your Workspace", "Organize your desk and workspace, remove unnecessary items.", "Productivity", "easy"),
    ],
}

LANGUAGE_PACKS = {"tr": TR, "en": EN}

def get_language_pack(language: str | None, default: str = "tr") -> dict:
    if language and language in LANGUAGE_PACKS:
        return LANGUAGE_PACKS[language]
    return LANGUAGE_PACKS.get(default, TR)
