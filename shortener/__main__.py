from shortener.core.supervisor import main

raise SystemExit(main())
